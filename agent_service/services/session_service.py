"""
Session Service - bearer tokens minted after a verified OTP
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict
import jwt
from jwt.exceptions import PyJWTError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker
from agent_service.config import Settings
from agent_service.models.agent import Agent
from agent_service.models.session import AgentSession
from agent_service.services.agent_registry import serialize_agent
from agent_service.utils.exceptions import AuthError
from agent_service.utils.helpers import as_utc, hash_token, utcnow

logger = logging.getLogger(__name__)

TOKEN_TYPE = "agent"


class SessionIssuer:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 60 * 24,
    ):
        self.session_factory = session_factory
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_in = timedelta(minutes=expire_minutes)

    @classmethod
    def from_settings(cls, session_factory: async_sessionmaker, settings: Settings) -> "SessionIssuer":
        return cls(
            session_factory,
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        )

    def mint(self, agent_id: str) -> Dict:
        """Create a signed access token for the agent"""
        now = utcnow()
        payload = {
            "sub": agent_id,
            "type": TOKEN_TYPE,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self.expires_in,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return {"token": token, "expires_in": int(self.expires_in.total_seconds())}

    def decode(self, token: str) -> Dict:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except PyJWTError:
            raise AuthError()

        if payload.get("type") != TOKEN_TYPE or not payload.get("sub"):
            raise AuthError("Invalid token type")
        return payload

    async def create_session(self, agent_id: str, token: str) -> None:
        """Record a session for a freshly minted token"""
        payload = self.decode(token)
        async with self.session_factory() as session:
            session.add(AgentSession(
                id=str(uuid.uuid4()),
                agent_id=agent_id,
                token_hash=hash_token(token),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            ))
            await session.commit()

    async def validate(self, token: str) -> Dict:
        """Return the agent owning a live session, or raise AuthError"""
        payload = self.decode(token)

        async with self.session_factory() as session:
            stmt = select(AgentSession).where(AgentSession.token_hash == hash_token(token))
            result = await session.execute(stmt)
            agent_session = result.scalar_one_or_none()

            if agent_session is None or agent_session.revoked_at is not None:
                raise AuthError("Session not found or revoked")
            if as_utc(agent_session.expires_at) <= utcnow():
                raise AuthError("Session expired")
            if agent_session.agent_id != payload["sub"]:
                raise AuthError()

            agent = await session.get(Agent, agent_session.agent_id)
            if agent is None or agent.status != "active":
                raise AuthError("Agent not found or inactive")

            return serialize_agent(agent)

    async def refresh(self, token: str) -> Dict:
        """Swap a live token for a new one"""
        agent = await self.validate(token)
        await self.invalidate(token)

        token_data = self.mint(agent["id"])
        await self.create_session(agent["id"], token_data["token"])
        logger.info(f"Session refreshed for agent {agent['id']}")
        return token_data

    async def invalidate(self, token: str) -> None:
        """Revoke the session behind a token; revoking twice is a no-op"""
        async with self.session_factory() as session:
            await session.execute(
                update(AgentSession)
                .where(AgentSession.token_hash == hash_token(token), AgentSession.revoked_at.is_(None))
                .values(revoked_at=utcnow())
            )
            await session.commit()
