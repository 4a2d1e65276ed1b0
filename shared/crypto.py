"""
Cryptographic helpers: password hashing and OTP code hashing.

Passwords use argon2id (via argon2-cffi), a salted, memory-hard adaptive
hash. OTP codes are stored as SHA-256 digests bound to their owner so the
plaintext code is never persisted.
"""

from __future__ import annotations

import hashlib

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()

# Hash of a throwaway password, verified against when no user matches so
# that "unknown email" and "wrong password" take comparable time.
_DUMMY_PASSWORD_HASH = _password_hasher.hash("culinary-hub-dummy-password")


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Return ``True`` only when *plain_password* matches *password_hash*.

    A malformed or non-argon2 hash counts as a mismatch.
    """
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def burn_password_check(plain_password: str) -> None:
    """Spend one password verification's worth of time and discard it."""
    verify_password(plain_password, _DUMMY_PASSWORD_HASH)


def hash_otp_code(user_id: str, code: str) -> str:
    """Return the hex SHA-256 digest of *code* scoped to *user_id*.

    The same code issued to two users yields two different digests.
    """
    return hashlib.sha256(f"{user_id}:{code}".encode("utf-8")).hexdigest()
