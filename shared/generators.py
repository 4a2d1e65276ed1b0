"""
Random code generators: pure functions over the ``secrets`` CSPRNG.
"""

from __future__ import annotations

import secrets
import uuid


def generate_otp_code(length: int = 6, allow_leading_zeros: bool = False) -> str:
    """Generate a uniformly random numeric OTP.

    Args:
        length: Number of digits (default 6).
        allow_leading_zeros: When False (default) the first digit is never
            zero, i.e. a 6-digit code is drawn from ``[100000, 999999]``.
            When True the full ``[000000, 999999]`` space is used.

    Returns:
        String of exactly *length* decimal digits.
    """
    if length < 1:
        raise ValueError("OTP length must be positive")

    if allow_leading_zeros:
        return str(secrets.randbelow(10**length)).zfill(length)

    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(10**length - low))


def generate_request_id() -> str:
    """Generate a short unique request ID for log correlation."""
    return f"req_{uuid.uuid4().hex[:12]}"
