"""Masking helpers for guest contact data. Guest PII never reaches logs raw."""

import re
from typing import Any

_EMAIL_PATTERN = re.compile(r"^([^@\s]+)@([^@\s]+)$")

_MASK = "***"

# Request/guest keys whose values are contact data
PII_KEYS = frozenset(
    {
        "guest_name",
        "guest_email",
        "guest_phone",
        "full_name",
        "email",
        "phone",
        "emergency_contact_name",
        "emergency_contact_phone",
    }
)


def mask_email(value: str) -> str:
    """Keep the first local character and the domain: j***@example.com."""
    match = _EMAIL_PATTERN.match(value.strip())
    if not match:
        return _MASK
    local, domain = match.groups()
    return f"{local[0]}{_MASK}@{domain}"


def mask_phone(value: str) -> str:
    """Keep only the last two digits."""
    digits = re.sub(r"\D", "", value)
    if len(digits) <= 2:
        return _MASK
    return f"{_MASK}{digits[-2:]}"


def mask_name(value: str) -> str:
    """Keep initials only."""
    parts = [p for p in value.split() if p]
    if not parts:
        return _MASK
    return " ".join(f"{p[0]}." for p in parts)


def mask_value(key: str, value: Any) -> Any:
    """Mask a single field if its key names contact data."""
    if value is None or key not in PII_KEYS:
        return value
    text = str(value)
    if "email" in key:
        return mask_email(text)
    if "phone" in key:
        return mask_phone(text)
    return mask_name(text)


def safe_log_context(**kwargs: Any) -> dict[str, Any]:
    """Build a context dict safe for logging; contact fields are masked."""
    return {k: mask_value(k, v) for k, v in kwargs.items()}
