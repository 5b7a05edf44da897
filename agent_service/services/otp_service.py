"""
OTP Service - one-time code issuance, verification and lockout

Per phone number the service moves between three states: no active code,
code issued, and locked. A phone is locked while its ``otp_lockouts`` row has
``locked_until`` in the future. Consecutive failed verifications raise the
row's ``attempt_count``; the failure that brings it to ``max_attempts`` sets
``locked_until`` to now + lockout duration. A successful verification deletes
the row, and an expired lock is discarded on the next verification so the
count starts over.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional
from sqlalchemy import select, update, delete, case, literal, DateTime
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from agent_service.config import Environment, Settings
from agent_service.models.otp import OtpCode, OtpLockout
from agent_service.utils.exceptions import (
    AgentServiceError,
    ExpiredError,
    InvalidCodeError,
    LockedError,
    MaxAttemptsError,
)
from agent_service.utils.helpers import as_utc, generate_numeric_code, mask_phone_number, utcnow
from agent_service.utils.validators import clean_phone_number, validate_delivery_method

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class OtpAuthenticator:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        environment: Environment = Environment.DEVELOPMENT,
        code_length: int = 6,
        expiry_minutes: int = 10,
        max_attempts: int = 5,
        lockout_minutes: int = 30,
    ):
        self.session_factory = session_factory
        self.environment = environment
        self.code_length = code_length
        self.expiry = timedelta(minutes=expiry_minutes)
        self.max_attempts = max_attempts
        self.lockout_duration = timedelta(minutes=lockout_minutes)

    @classmethod
    def from_settings(cls, session_factory: async_sessionmaker, settings: Settings) -> "OtpAuthenticator":
        return cls(
            session_factory,
            environment=settings.ENVIRONMENT,
            code_length=settings.OTP_LENGTH,
            expiry_minutes=settings.OTP_EXPIRY_MINUTES,
            max_attempts=settings.OTP_MAX_ATTEMPTS,
            lockout_minutes=settings.OTP_LOCKOUT_MINUTES,
        )

    @property
    def expose_codes(self) -> bool:
        """Codes are echoed back to the caller outside production only"""
        return self.environment != Environment.PRODUCTION

    def generate_code(self) -> str:
        return generate_numeric_code(self.code_length)

    async def _get_active_lockout(self, session: AsyncSession, phone_number: str, now: datetime) -> Optional[OtpLockout]:
        stmt = select(OtpLockout).where(
            OtpLockout.phone_number == phone_number,
            OtpLockout.locked_until > now,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def is_locked_out(self, phone_number: str) -> bool:
        """Check if phone number is locked out"""
        async with self.session_factory() as session:
            lockout = await self._get_active_lockout(session, clean_phone_number(phone_number), utcnow())
            return lockout is not None

    async def create_lockout(self, phone_number: str) -> Dict:
        """Lock a phone number for the full lockout duration"""
        phone_number = clean_phone_number(phone_number)
        locked_until = utcnow() + self.lockout_duration

        async with self.session_factory() as session:
            insert = self._insert_for(session)
            stmt = insert(OtpLockout).values(
                phone_number=phone_number,
                locked_until=locked_until,
                attempt_count=self.max_attempts,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[OtpLockout.phone_number],
                set_={
                    "locked_until": locked_until,
                    "attempt_count": case(
                        (OtpLockout.attempt_count + 1 > self.max_attempts, OtpLockout.attempt_count + 1),
                        else_=self.max_attempts,
                    ),
                },
            ).returning(OtpLockout.attempt_count)
            result = await session.execute(stmt)
            attempt_count = result.scalar_one()
            await session.commit()

        logger.warning(f"Lockout created for {mask_phone_number(phone_number)} until {locked_until.isoformat()}")
        return {
            "phone_number": phone_number,
            "locked_until": locked_until.isoformat(),
            "attempt_count": attempt_count,
        }

    async def clear_lockout(self, phone_number: str) -> None:
        """Clear lockout for phone number"""
        async with self.session_factory() as session:
            await session.execute(
                delete(OtpLockout).where(OtpLockout.phone_number == clean_phone_number(phone_number))
            )
            await session.commit()

    async def issue(self, phone_number: str, delivery_method: str = "sms") -> Dict:
        """Invalidate any live code for the phone and issue a fresh one"""
        phone_number = clean_phone_number(phone_number)
        validate_delivery_method(delivery_method)
        now = utcnow()

        async with self.session_factory() as session:
            lockout = await self._get_active_lockout(session, phone_number, now)
            if lockout is not None:
                raise LockedError(as_utc(lockout.locked_until))

            await session.execute(
                update(OtpCode)
                .where(OtpCode.phone_number == phone_number, OtpCode.is_used == False)  # noqa: E712
                .values(is_used=True)
            )

            code = self.generate_code()
            expires_at = now + self.expiry
            otp = OtpCode(
                id=str(uuid.uuid4()),
                phone_number=phone_number,
                code=code,
                delivery_method=delivery_method,
                expires_at=expires_at,
                is_used=False,
                attempts=0,
                created_at=now,
            )
            session.add(otp)
            await session.commit()

        # Codes are not delivered yet; the log line stands in for SMS/email
        if self.expose_codes:
            logger.info(
                f"OTP code for {phone_number}: {code} via {delivery_method}, expires at {expires_at.isoformat()}"
            )
        else:
            logger.info(f"OTP issued for {mask_phone_number(phone_number)} via {delivery_method}")

        response = {
            "id": otp.id,
            "expires_at": expires_at.isoformat(),
            "delivery_method": delivery_method,
        }
        if self.expose_codes:
            response["code"] = code
        return response

    def _insert_for(self, session: AsyncSession):
        dialect = session.get_bind().dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise RuntimeError(f"Lockout upsert is not supported on {dialect}") from None

    async def _record_failure(self, session: AsyncSession, phone_number: str, now: datetime) -> int:
        """Increment the lockout counter, locking the phone once it reaches max_attempts"""
        locked_until = now + self.lockout_duration
        insert = self._insert_for(session)
        new_count = OtpLockout.attempt_count + 1

        stmt = insert(OtpLockout).values(
            phone_number=phone_number,
            locked_until=locked_until if self.max_attempts <= 1 else now,
            attempt_count=1,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[OtpLockout.phone_number],
            set_={
                "attempt_count": new_count,
                "locked_until": case(
                    (new_count >= self.max_attempts, literal(locked_until, DateTime(timezone=True))),
                    else_=OtpLockout.locked_until,
                ),
            },
        ).returning(OtpLockout.attempt_count)
        result = await session.execute(stmt)
        attempt_count = result.scalar_one()

        # The phone's live code shares the penalty
        await session.execute(
            update(OtpCode)
            .where(OtpCode.phone_number == phone_number, OtpCode.is_used == False)  # noqa: E712
            .values(attempts=OtpCode.attempts + 1)
        )
        return attempt_count

    async def verify(self, phone_number: str, code: str) -> Dict:
        """Verify a code in a single transaction and consume it on success"""
        phone_number = clean_phone_number(phone_number)
        now = utcnow()

        async with self.session_factory() as session:
            try:
                lockout_stmt = select(OtpLockout).where(OtpLockout.phone_number == phone_number).with_for_update()
                lockout = (await session.execute(lockout_stmt)).scalar_one_or_none()

                if lockout is not None:
                    locked_until = as_utc(lockout.locked_until)
                    if locked_until > now:
                        await session.commit()
                        raise LockedError(locked_until)
                    if lockout.attempt_count >= self.max_attempts:
                        # Lock served; start counting again
                        await session.delete(lockout)
                        await session.flush()

                otp_stmt = (
                    select(OtpCode)
                    .where(
                        OtpCode.phone_number == phone_number,
                        OtpCode.code == code,
                        OtpCode.is_used == False,  # noqa: E712
                    )
                    .order_by(OtpCode.created_at.desc())
                    .limit(1)
                    .with_for_update()
                )
                otp = (await session.execute(otp_stmt)).scalar_one_or_none()

                if otp is not None:
                    if now > as_utc(otp.expires_at):
                        await session.commit()
                        raise ExpiredError()

                    if otp.attempts >= self.max_attempts:
                        await session.commit()
                        raise MaxAttemptsError()

                    consumed = await session.execute(
                        update(OtpCode)
                        .where(OtpCode.id == otp.id, OtpCode.is_used == False)  # noqa: E712
                        .values(is_used=True)
                        .execution_options(synchronize_session=False)
                    )
                    if consumed.rowcount == 1:
                        await session.execute(delete(OtpLockout).where(OtpLockout.phone_number == phone_number))
                        await session.commit()
                        logger.info(f"OTP verified for {mask_phone_number(phone_number)}")
                        return {"success": True, "otp_id": otp.id}

                attempt_count = await self._record_failure(session, phone_number, now)
                await session.commit()

                if attempt_count >= self.max_attempts:
                    logger.warning(
                        f"Phone {mask_phone_number(phone_number)} locked after {attempt_count} failed attempts"
                    )
                    raise LockedError(
                        now + self.lockout_duration,
                        f"Too many failed attempts. Account locked for "
                        f"{int(self.lockout_duration.total_seconds() // 60)} minutes.",
                    )

                raise InvalidCodeError(self.max_attempts - attempt_count)
            except AgentServiceError:
                raise
            except Exception:
                await session.rollback()
                logger.error(f"OTP verification failed for {mask_phone_number(phone_number)}", exc_info=True)
                raise

    async def cleanup(self) -> Dict[str, int]:
        """Delete expired codes and lockouts"""
        now = utcnow()
        async with self.session_factory() as session:
            codes = await session.execute(delete(OtpCode).where(OtpCode.expires_at < now))
            lockouts = await session.execute(delete(OtpLockout).where(OtpLockout.locked_until < now))
            await session.commit()

        removed = {"otp_codes": codes.rowcount, "otp_lockouts": lockouts.rowcount}
        if any(removed.values()):
            logger.info(f"OTP cleanup removed {removed['otp_codes']} codes and {removed['otp_lockouts']} lockouts")
        return removed
