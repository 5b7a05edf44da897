# Database models
from agent_service.models.agent import Agent
from agent_service.models.otp import OtpCode, OtpLockout
from agent_service.models.session import AgentSession

__all__ = [
    "Agent",
    "OtpCode",
    "OtpLockout",
    "AgentSession",
]
