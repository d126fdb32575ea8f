"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: Optional[str]) -> str:
    """
    Trim and lower-case an email address.

    Raises:
        ValueError: If the address is empty or malformed
    """
    value = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Valid email is required")
    return value


def validate_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """Keep digits and a leading +; reject anything shorter than 7 digits"""
    if not phone:
        return phone
    cleaned = phone.strip()
    digits = re.sub(r"\D", "", cleaned)
    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Invalid phone number")
    return f"+{digits}" if cleaned.startswith("+") else digits
