from fastapi import APIRouter, Depends, status
from agent_service.schemas.agent import AgentEnvelope
from agent_service.schemas.auth import (
    AgentRegisterRequest,
    OtpRequest,
    OtpVerifyRequest,
    RegisterResponse,
    OtpRequestResponse,
    LoginResponse,
    TokenResponse,
    MessageResponse,
)
from agent_service.services import AuthGateway
from agent_service.utils.dependencies import get_auth_gateway, get_bearer_token, get_current_agent

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_agent(request: AgentRegisterRequest, gateway: AuthGateway = Depends(get_auth_gateway)):
    """Register a new agent and send the first login code"""
    result = await gateway.register(request.model_dump())
    return RegisterResponse(data=result)


@router.post("/request-otp", response_model=OtpRequestResponse, response_model_exclude_none=True)
async def request_otp(request: OtpRequest, gateway: AuthGateway = Depends(get_auth_gateway)):
    """Request a login code for a registered phone number"""
    otp = await gateway.request_otp(request.phone_number, request.delivery_method)
    return OtpRequestResponse(
        expires_at=otp["expires_at"],
        delivery_method=otp["delivery_method"],
        code=otp.get("code"),
    )


@router.post("/verify-otp", response_model=LoginResponse)
async def verify_otp(request: OtpVerifyRequest, gateway: AuthGateway = Depends(get_auth_gateway)):
    """Verify a login code and open a session"""
    return LoginResponse(**await gateway.verify_otp(request.phone_number, request.code))


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    token: str = Depends(get_bearer_token),
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    """Exchange a live token for a new one"""
    return TokenResponse(**await gateway.refresh(token))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(get_bearer_token),
    gateway: AuthGateway = Depends(get_auth_gateway),
):
    await gateway.logout(token)
    return MessageResponse(message="Logged out successfully")


@router.post("/validate", response_model=AgentEnvelope)
async def validate_token(agent: dict = Depends(get_current_agent)):
    """Token validation endpoint for other services"""
    return AgentEnvelope(data=agent)
