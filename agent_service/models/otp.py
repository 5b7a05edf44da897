from sqlalchemy import Column, String, Boolean, DateTime, Integer, Index
from sqlalchemy.sql import func
from agent_service.database.connection import Base


class OtpCode(Base):
    __tablename__ = "otp_codes"
    __table_args__ = (
        Index("ix_otp_codes_phone_number_is_used", "phone_number", "is_used"),
    )

    id = Column(String, primary_key=True)
    phone_number = Column(String, nullable=False)
    code = Column(String(6), nullable=False)
    delivery_method = Column(String, nullable=False, default="sms")  # 'sms', 'email'
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class OtpLockout(Base):
    __tablename__ = "otp_lockouts"

    phone_number = Column(String, primary_key=True)
    locked_until = Column(DateTime(timezone=True), nullable=False)
    attempt_count = Column(Integer, nullable=False, default=0)
