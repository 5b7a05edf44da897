from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from agent_service.services import AgentRegistry, AuthGateway, SessionIssuer
from agent_service.utils.exceptions import AuthError

security = HTTPBearer(auto_error=False)


def get_agent_registry(request: Request) -> AgentRegistry:
    return request.app.state.agent_registry


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


def get_auth_gateway(request: Request) -> AuthGateway:
    return request.app.state.auth_gateway


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """Extract the raw bearer token from the Authorization header"""
    if credentials is None or not credentials.credentials:
        raise AuthError("Authorization token required")
    return credentials.credentials


async def get_current_agent(
    token: str = Depends(get_bearer_token),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> dict:
    """Resolve the agent behind a live session token"""
    return await sessions.validate(token)
