"""
Agent Registry - agent identity rows, uniqueness and status
"""
import logging
import uuid
from typing import Dict, Iterable, Optional
from sqlalchemy import select, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from agent_service.config import Settings
from agent_service.models.agent import Agent
from agent_service.utils.exceptions import DuplicateError, NotFoundError, ValidationError
from agent_service.utils.helpers import generate_numeric_code, isoformat, mask_phone_number
from agent_service.utils.validators import clean_phone_number, validate_phone_number, validate_status

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "email")
LICENSE_NUMBER_LENGTH = 6


def serialize_agent(agent: Agent) -> Dict:
    return {
        "id": agent.id,
        "phone_number": agent.phone_number,
        "country_code": agent.country_code,
        "first_name": agent.first_name,
        "last_name": agent.last_name,
        "email": agent.email,
        "license_number": agent.license_number,
        "status": agent.status,
        "created_at": isoformat(agent.created_at),
        "updated_at": isoformat(agent.updated_at),
    }


class AgentRegistry:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        supported_country_codes: Iterable[str] = ("+212", "+33"),
        phone_min_digits: int = 9,
        phone_max_digits: int = 12,
        license_max_retries: int = 5,
    ):
        self.session_factory = session_factory
        self.supported_country_codes = tuple(supported_country_codes)
        self.phone_min_digits = phone_min_digits
        self.phone_max_digits = phone_max_digits
        self.license_max_retries = license_max_retries

    @classmethod
    def from_settings(cls, session_factory: async_sessionmaker, settings: Settings) -> "AgentRegistry":
        return cls(
            session_factory,
            supported_country_codes=settings.SUPPORTED_COUNTRY_CODES,
            phone_min_digits=settings.PHONE_MIN_DIGITS,
            phone_max_digits=settings.PHONE_MAX_DIGITS,
            license_max_retries=settings.LICENSE_NUMBER_MAX_RETRIES,
        )

    def generate_license_number(self) -> str:
        return generate_numeric_code(LICENSE_NUMBER_LENGTH)

    async def _raise_if_taken(self, session, phone_number: str, email: str) -> None:
        """Raise DuplicateError for the first colliding field, phone before email"""
        stmt = select(Agent).where(or_(Agent.phone_number == phone_number, Agent.email == email))
        result = await session.execute(stmt)
        existing = result.scalars().all()

        if any(agent.phone_number == phone_number for agent in existing):
            raise DuplicateError("phone_number", "Phone number already registered")
        if any(agent.email == email for agent in existing):
            raise DuplicateError("email", "Email already registered")

    async def register(
        self,
        phone_number: str,
        country_code: str,
        first_name: str,
        last_name: str,
        email: str,
    ) -> Dict:
        """Register a new agent with a unique license number"""
        validated_phone = validate_phone_number(
            phone_number,
            country_code,
            self.supported_country_codes,
            self.phone_min_digits,
            self.phone_max_digits,
        )
        if not first_name or not last_name:
            raise ValidationError("first_name and last_name are required")
        if not email:
            raise ValidationError("email is required")
        email = email.lower()

        async with self.session_factory() as session:
            await self._raise_if_taken(session, validated_phone, email)

        # The UNIQUE constraint on license_number is the arbiter; a collision
        # only costs another draw.
        for attempt in range(1, self.license_max_retries + 1):
            license_number = self.generate_license_number()
            new_agent = Agent(
                id=str(uuid.uuid4()),
                phone_number=validated_phone,
                country_code=country_code,
                first_name=first_name,
                last_name=last_name,
                email=email,
                license_number=license_number,
                status="active",
            )

            async with self.session_factory() as session:
                session.add(new_agent)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    # A concurrent registration may have claimed the phone or email
                    await self._raise_if_taken(session, validated_phone, email)
                    logger.warning(
                        f"License number collision on attempt {attempt}/{self.license_max_retries}"
                    )
                    continue

                await session.refresh(new_agent)
                logger.info(f"Registered agent {new_agent.id} ({mask_phone_number(validated_phone)})")
                return serialize_agent(new_agent)

        logger.error(f"Could not allocate a unique license number after {self.license_max_retries} attempts")
        raise DuplicateError("license_number", "Could not allocate a unique license number")

    async def _get_one(self, *criteria) -> Optional[Dict]:
        async with self.session_factory() as session:
            stmt = select(Agent).where(*criteria)
            result = await session.execute(stmt)
            agent = result.scalar_one_or_none()

            if not agent:
                return None

            return serialize_agent(agent)

    async def get_by_phone_number(self, phone_number: str) -> Optional[Dict]:
        """Get agent by phone number"""
        return await self._get_one(Agent.phone_number == clean_phone_number(phone_number))

    async def get_by_id(self, agent_id: str) -> Optional[Dict]:
        """Get agent by ID"""
        return await self._get_one(Agent.id == agent_id)

    async def get_by_email(self, email: str) -> Optional[Dict]:
        """Get agent by email"""
        return await self._get_one(Agent.email == (email or "").lower())

    async def update_profile(self, agent_id: str, updates: Dict) -> Dict:
        """Update first name, last name and/or email; phone number is immutable"""
        values = {key: value for key, value in updates.items() if key in PROFILE_FIELDS and value is not None}

        if not values:
            raise ValidationError("No valid fields to update")

        for field in ("first_name", "last_name"):
            if field in values and not values[field]:
                raise ValidationError("first_name and last_name cannot be empty")

        if "email" in values:
            values["email"] = values["email"].lower()

        async with self.session_factory() as session:
            if "email" in values:
                email_stmt = select(Agent.id).where(Agent.email == values["email"], Agent.id != agent_id)
                email_result = await session.execute(email_stmt)
                if email_result.first() is not None:
                    raise DuplicateError("email", "Email already in use")

            stmt = update(Agent).where(Agent.id == agent_id).values(**values)
            try:
                result = await session.execute(stmt)
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateError("email", "Email already in use")

            if result.rowcount == 0:
                raise NotFoundError()

            agent = await session.get(Agent, agent_id, populate_existing=True)
            return serialize_agent(agent)

    async def update_status(self, agent_id: str, status: str) -> Dict:
        """Update agent status"""
        validate_status(status)

        async with self.session_factory() as session:
            stmt = update(Agent).where(Agent.id == agent_id).values(status=status)
            result = await session.execute(stmt)
            await session.commit()

            if result.rowcount == 0:
                raise NotFoundError()

            agent = await session.get(Agent, agent_id, populate_existing=True)
            logger.info(f"Agent {agent_id} status set to {status}")
            return serialize_agent(agent)
