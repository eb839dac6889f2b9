"""
Israeli phone number helpers.
Normalizes user input to the local 0XXXXXXXXX form used for buyer lookup.
"""

import re

ISRAELI_PHONE_PATTERN = re.compile(r"^0[234578]\d{7,8}$")
_STRIP_PATTERN = re.compile(r"[\s\-()]")


def sanitize_phone(phone: str) -> str:
    """
    Normalize a phone number to local format.

    Examples:
        "+972-50-123-4567" -> "0501234567"
        "50 123 4567" -> "0501234567"

    Args:
        phone: Raw phone input

    Returns:
        Digits-only local phone number
    """
    if not phone:
        return ""

    cleaned = _STRIP_PATTERN.sub("", phone)

    if cleaned.startswith("+"):
        cleaned = cleaned[1:]

    if cleaned.startswith("972"):
        cleaned = "0" + cleaned[3:]

    # Mobile number typed without the leading zero
    if len(cleaned) >= 2 and cleaned[0] == "5" and cleaned[1].isdigit():
        cleaned = "0" + cleaned

    return cleaned


def is_valid_israeli_phone(phone: str) -> bool:
    """Check a phone number against the Israeli landline and mobile format."""
    return bool(ISRAELI_PHONE_PATTERN.match(sanitize_phone(phone)))


def format_phone_display(phone: str) -> str:
    """Format a mobile number as XXX-XXXXXXX; other numbers are returned sanitized."""
    sanitized = sanitize_phone(phone)
    if len(sanitized) == 10 and sanitized.startswith("0"):
        return f"{sanitized[:3]}-{sanitized[3:]}"
    return sanitized
