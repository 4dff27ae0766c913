"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\+]?[0-9\s\-\(\)]{10,15}$")


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lowercase and trim an email address"""
    if email is None:
        return None
    return email.strip().lower()


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Normalized (trimmed, lowercase) email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = normalize_email(email)
    if len(email) > 255 or not EMAIL_PATTERN.match(email):
        raise ValueError("Please provide a valid email address")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a loosely formatted international phone number.

    Raises:
        ValueError: If phone number is invalid
    """
    if phone is None:
        return None
    phone = phone.strip()
    if not phone:
        return None
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Please provide a valid phone number")
    return phone
