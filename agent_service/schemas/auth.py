from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from agent_service.schemas.agent import AgentResponse


class AgentRegisterRequest(BaseModel):
    phone_number: str = Field(..., min_length=1, max_length=20)
    country_code: str = Field(..., min_length=2, max_length=5)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    delivery_method: Literal["sms", "email"] = "sms"


class OtpRequest(BaseModel):
    phone_number: str = Field(..., min_length=1, max_length=20)
    delivery_method: Literal["sms", "email"] = "sms"


class OtpVerifyRequest(BaseModel):
    phone_number: str = Field(..., min_length=1, max_length=20)
    code: str = Field(..., min_length=1, max_length=10)


class OtpIssueResponse(BaseModel):
    id: str
    expires_at: str
    delivery_method: str
    code: Optional[str] = None  # only outside production


class RegisterData(BaseModel):
    agent: AgentResponse
    otp: OtpIssueResponse


class RegisterResponse(BaseModel):
    success: bool = True
    data: RegisterData


class OtpRequestResponse(BaseModel):
    success: bool = True
    expires_at: str
    delivery_method: str
    code: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    expires_in: int
    agent: AgentResponse


class TokenResponse(BaseModel):
    success: bool = True
    token: str
    expires_in: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str
