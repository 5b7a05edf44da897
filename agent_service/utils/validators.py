import re
from typing import Iterable
from agent_service.utils.exceptions import ValidationError

AGENT_STATUSES = ("active", "inactive", "suspended")
DELIVERY_METHODS = ("sms", "email")

_PHONE_SEPARATORS = re.compile(r"[\s-]")


def clean_phone_number(phone_number: str) -> str:
    """Strip spaces and dashes from a phone number"""
    return _PHONE_SEPARATORS.sub("", phone_number or "")


def validate_phone_number(
    phone_number: str,
    country_code: str,
    supported_country_codes: Iterable[str],
    min_digits: int = 9,
    max_digits: int = 12,
) -> str:
    """Validate country code and phone number format, return the cleaned number"""
    supported = list(supported_country_codes)
    if country_code not in supported:
        raise ValidationError(
            f"Unsupported country code {country_code!r}. Supported: {', '.join(supported)}"
        )

    cleaned = clean_phone_number(phone_number)
    if not re.fullmatch(r"\d{%d,%d}" % (min_digits, max_digits), cleaned, re.ASCII):
        raise ValidationError("Invalid phone number format")

    return cleaned


def validate_status(status: str) -> str:
    if status not in AGENT_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(AGENT_STATUSES)}")
    return status


def validate_delivery_method(delivery_method: str) -> str:
    if delivery_method not in DELIVERY_METHODS:
        raise ValidationError(f"Invalid delivery method. Must be one of: {', '.join(DELIVERY_METHODS)}")
    return delivery_method
