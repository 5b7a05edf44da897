"""
Auth Service - registration and login flows across registry, OTP and sessions
"""
import logging
from typing import Dict
from agent_service.services.agent_registry import AgentRegistry
from agent_service.services.otp_service import OtpAuthenticator
from agent_service.services.session_service import SessionIssuer
from agent_service.utils.exceptions import AuthError, NotFoundError
from agent_service.utils.helpers import mask_phone_number

logger = logging.getLogger(__name__)


class AuthGateway:
    def __init__(self, registry: AgentRegistry, otp: OtpAuthenticator, sessions: SessionIssuer):
        self.registry = registry
        self.otp = otp
        self.sessions = sessions

    async def register(self, data: Dict) -> Dict:
        """Register an agent and send the first login code"""
        agent = await self.registry.register(
            phone_number=data["phone_number"],
            country_code=data["country_code"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            email=data["email"],
        )
        otp = await self.otp.issue(agent["phone_number"], data.get("delivery_method") or "sms")
        return {"agent": agent, "otp": otp}

    async def request_otp(self, phone_number: str, delivery_method: str = "sms") -> Dict:
        agent = await self.registry.get_by_phone_number(phone_number)
        if not agent:
            logger.info(f"OTP requested for unregistered phone {mask_phone_number(phone_number)}")
            raise NotFoundError("Agent not registered")

        return await self.otp.issue(agent["phone_number"], delivery_method)

    async def verify_otp(self, phone_number: str, code: str) -> Dict:
        """Verify the code, then open a session for the agent"""
        await self.otp.verify(phone_number, code)

        agent = await self.registry.get_by_phone_number(phone_number)
        if not agent:
            raise NotFoundError()
        if agent["status"] != "active":
            logger.warning(f"Login refused for {agent['status']} agent {agent['id']}")
            raise AuthError("Agent not found or inactive")

        token_data = self.sessions.mint(agent["id"])
        await self.sessions.create_session(agent["id"], token_data["token"])
        logger.info(f"Agent {agent['id']} logged in")

        return {
            "token": token_data["token"],
            "expires_in": token_data["expires_in"],
            "agent": agent,
        }

    async def refresh(self, token: str) -> Dict:
        return await self.sessions.refresh(token)

    async def logout(self, token: str) -> None:
        await self.sessions.invalidate(token)
