"""Error kinds raised by the agent identity and OTP services.

Every error carries a machine-readable ``code`` so the HTTP layer can map it
to a status without looking at the message text.
"""

from datetime import datetime
from typing import Optional


class AgentServiceError(Exception):
    """Base exception for all agent service errors."""

    code = "agent_service_error"

    def __init__(self, message: str, code: Optional[str] = None):
        """Initialize exception.

        Args:
            message: Human readable error message
            code: Optional override of the class error code
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        """Extra structured fields exposed alongside the message."""
        return {}


class ValidationError(AgentServiceError):
    """Raised when input is malformed or missing."""

    code = "validation_error"


class DuplicateError(AgentServiceError):
    """Raised when a uniqueness rule is violated."""

    code = "duplicate"

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"{field.replace('_', ' ').capitalize()} already registered")
        self.field = field

    def to_dict(self) -> dict:
        return {"field": self.field}


class NotFoundError(AgentServiceError):
    """Raised when an agent does not exist."""

    code = "not_found"

    def __init__(self, message: str = "Agent not found"):
        super().__init__(message)


class AuthError(AgentServiceError):
    """Raised when a session token cannot be validated."""

    code = "auth_error"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class InvalidCodeError(AgentServiceError):
    """Raised when no unused code matches the submitted value."""

    code = "invalid_code"

    def __init__(self, remaining_attempts: int):
        super().__init__(f"Invalid OTP code. {remaining_attempts} attempts remaining.")
        self.remaining_attempts = remaining_attempts

    def to_dict(self) -> dict:
        return {"remaining_attempts": self.remaining_attempts}


class ExpiredError(AgentServiceError):
    """Raised when the matching code is past its expiry."""

    code = "expired_code"

    def __init__(self, message: str = "OTP code has expired. Please request a new one."):
        super().__init__(message)


class MaxAttemptsError(AgentServiceError):
    """Raised when the matching code has used up its attempts."""

    code = "max_attempts"

    def __init__(self, message: str = "Maximum OTP attempts exceeded."):
        super().__init__(message)


class LockedError(AgentServiceError):
    """Raised while a phone number is locked out."""

    code = "locked"

    def __init__(self, locked_until: Optional[datetime] = None, message: Optional[str] = None):
        super().__init__(message or "Too many failed attempts. Please try again later.")
        self.locked_until = locked_until

    def to_dict(self) -> dict:
        if self.locked_until is None:
            return {}
        return {"locked_until": self.locked_until.isoformat()}
