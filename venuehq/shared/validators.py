"""Shared validation utilities"""

import re
import uuid
from typing import Optional

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_uk_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format, defaulting to UK.

    Accepts 07xxx national mobiles, 44xxx / 0044xxx international forms and
    any number already starting with '+'.

    Returns:
        Normalized phone number in E.164 format (e.g. +447700900123)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    raw = phone.strip()
    has_plus = raw.startswith("+")
    digits = re.sub(r"\D", "", raw)

    if has_plus:
        normalized = f"+{digits}"
    elif digits.startswith("00"):
        normalized = f"+{digits[2:]}"
    elif digits.startswith("44"):
        normalized = f"+{digits}"
    elif digits.startswith("0"):
        normalized = f"+44{digits[1:]}"
    else:
        raise ValueError("Invalid phone number")

    # E.164 allows up to 15 digits after '+'
    if not re.match(r"^\+[1-9]\d{7,14}$", normalized):
        raise ValueError("Invalid phone number")

    if normalized.startswith("+44") and len(normalized) != 13:
        raise ValueError("Invalid phone number")

    return normalized


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_time_string(value: Optional[str]) -> Optional[str]:
    """Validate an HH:MM time, trimming any trailing seconds ("18:30:00" -> "18:30")."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) == 8 and value.count(":") == 2:
        value = value[:5]
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value
