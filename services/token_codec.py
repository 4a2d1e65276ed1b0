"""
Session token codec: signs and verifies compact HS256 JWTs with PyJWT.

A token carries the business claims ``{userId, expires, epoch}`` plus the
registered claims ``iss``, ``aud``, ``iat`` and ``exp``. ``exp`` is always
``iat + session_ttl_seconds``, independent of the ``expires`` field; the
Session Manager keeps the two consistent.

verify() fails closed: a bad signature, a malformed or expired token, or a
payload that does not fit SessionClaims all yield None. It never raises.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import jwt
from pydantic import ValidationError as PydanticValidationError

from config import SessionSettings
from schemas.models.session import SessionClaims
from shared.datetime_utils import Clock, to_epoch_seconds, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

ALGORITHM = "HS256"


class TokenCodec:
    def __init__(self, settings: SessionSettings, now: Clock = utc_now) -> None:
        if not settings.jwt_secret:
            raise RuntimeError("JWT_SECRET must be set to sign session tokens")
        self._settings = settings
        self._now = now

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.session_ttl_seconds)

    def sign(self, claims: SessionClaims) -> str:
        issued_at = to_epoch_seconds(self._now())
        payload = claims.model_dump(mode="json", by_alias=True)
        payload.update(
            {
                "iss": self._settings.jwt_issuer,
                "aud": self._settings.jwt_audience,
                "iat": issued_at,
                "exp": issued_at + self._settings.session_ttl_seconds,
            }
        )
        return jwt.encode(payload, self._settings.jwt_secret, algorithm=ALGORITHM)

    def verify(self, token: Optional[str]) -> Optional[SessionClaims]:
        if not token:
            return None

        try:
            payload = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=[ALGORITHM],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                # Expiry is checked below against the injected clock
                options={
                    "require": ["exp", "iat", "iss", "aud"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            log.warning(
                "session_token_invalid", reason="decode_failed", error_type=type(e).__name__
            )
            return None

        exp = payload.get("exp")
        if not isinstance(exp, int) or exp <= to_epoch_seconds(self._now()):
            log.info("session_token_invalid", reason="expired")
            return None

        try:
            return SessionClaims.model_validate(payload)
        except PydanticValidationError:
            log.warning("session_token_invalid", reason="malformed_claims")
            return None
