"""
Input validators for the auth forms: framework-agnostic, pure functions.

Each validator returns an error message (the text shown next to the form
field) or ``None`` when the value is acceptable.
"""

from __future__ import annotations

import re
from typing import Optional

import validators as _validators

NAME_MIN_LENGTH = 2
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128



def validate_name(name: str) -> Optional[str]:
    if len(name.strip()) < NAME_MIN_LENGTH:
        return f"Name must be at least {NAME_MIN_LENGTH} characters."
    return None


def validate_email(email: str) -> Optional[str]:
    if not email or not _validators.email(email):
        return "Please enter a valid email."
    return None


def validate_new_password(password: str) -> Optional[str]:
    """Length rules for a password chosen at sign-up."""
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters long."
    if len(password) > PASSWORD_MAX_LENGTH:
        return f"Password must be at most {PASSWORD_MAX_LENGTH} characters long."
    return None


def validate_otp(code: str, length: int = 6) -> Optional[str]:
    if not re.fullmatch(rf"\d{{{length}}}", code or ""):
        return f"OTP must be a {length}-digit code."
    return None
