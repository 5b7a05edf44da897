import hashlib
import secrets
from datetime import datetime, timezone
from typing import Optional


def generate_numeric_code(length: int = 6) -> str:
    """Uniform random numeric code without a leading zero (100000-999999 for length 6)"""
    lower = 10 ** (length - 1)
    return str(lower + secrets.randbelow(9 * lower))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset on round trip)"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def isoformat(value: Optional[datetime]) -> str:
    return as_utc(value).isoformat() if value else ""


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def mask_phone_number(phone_number: str) -> str:
    """Keep only the last 3 digits for log lines"""
    if len(phone_number) <= 3:
        return "***"
    return f"{'*' * (len(phone_number) - 3)}{phone_number[-3:]}"
