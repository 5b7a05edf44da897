from agent_service.services.agent_registry import AgentRegistry
from agent_service.services.auth_service import AuthGateway
from agent_service.services.otp_service import OtpAuthenticator
from agent_service.services.session_service import SessionIssuer

__all__ = [
    "AgentRegistry",
    "AuthGateway",
    "OtpAuthenticator",
    "SessionIssuer",
]
