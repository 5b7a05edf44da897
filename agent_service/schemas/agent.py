from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class AgentResponse(BaseModel):
    id: str
    phone_number: str
    country_code: str
    first_name: str
    last_name: str
    email: str
    license_number: str
    status: str
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class AgentEnvelope(BaseModel):
    success: bool = True
    data: AgentResponse


class AgentProfileUpdateRequest(BaseModel):
    # phone_number is immutable
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
