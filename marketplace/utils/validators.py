"""
Identifier validation helpers
"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
# E.164-like: optional '+', first digit 1-9, 2-15 digits total
PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{1,14}$')


def is_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def is_phone_number(value: Optional[str]) -> bool:
    return bool(value) and PHONE_PATTERN.match(value) is not None


def normalize_phone(phone: str) -> str:
    """Return the phone number with a leading '+'"""
    phone = phone.strip()
    return phone if phone.startswith('+') else f'+{phone}'


def phone_variants(phone: str) -> list[str]:
    """Raw and normalized forms, for lookups against rows stored either way"""
    normalized = normalize_phone(phone)
    return [normalized, normalized[1:]]
