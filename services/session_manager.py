"""
Session Manager: the only component that issues or destroys the
``session`` cookie.

Sessions are stateless: the signed token in the cookie is the session of
record. A session is valid while its signature verifies, its expiry has
not passed, the user still exists and the token's epoch matches the
user's current ``session_epoch``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError
from starlette.requests import Request
from starlette.responses import Response

from config import AppSettings
from repositories.protocol import UserRepository
from schemas.dto.responses.auth import UserProfileResponse
from schemas.models.session import SessionClaims, SessionUser
from services.token_codec import TokenCodec
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

_EPOCH_START = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SessionManager:
    def __init__(
        self,
        codec: TokenCodec,
        users: UserRepository,
        settings: AppSettings,
        now: Clock = utc_now,
    ) -> None:
        self._codec = codec
        self._users = users
        self._settings = settings
        self._now = now

    @property
    def cookie_name(self) -> str:
        return self._settings.session.session_cookie_name

    def _set_cookie(self, response: Response, value: str, expires: datetime) -> None:
        response.set_cookie(
            self.cookie_name,
            value=value,
            expires=expires,
            path="/",
            httponly=True,
            secure=self._settings.cookie_secure,
            samesite=self._settings.session.cookie_samesite,
        )

    def _issue(self, response: Response, user_id: str, epoch: int) -> datetime:
        expires = self._now() + self._codec.ttl
        token = self._codec.sign(SessionClaims(user_id=user_id, expires=expires, epoch=epoch))
        self._set_cookie(response, token, expires)
        return expires

    def create_session(self, response: Response, user_id: str, epoch: int = 0) -> datetime:
        """Stamp a fresh session cookie on *response*, replacing any prior one.

        Returns:
            The session expiry (now + session TTL).
        """
        expires = self._issue(response, user_id, epoch)
        log.info("session_created", user_id=user_id, expires=expires.isoformat())
        return expires

    def delete_session(self, response: Response) -> None:
        """Expire the cookie immediately. Safe to call without a session."""
        self._set_cookie(response, "", _EPOCH_START)

    def read_claims(self, request: Request) -> Optional[SessionClaims]:
        return self._codec.verify(request.cookies.get(self.cookie_name))

    async def get_session(self, request: Request) -> Optional[SessionUser]:
        claims = self.read_claims(request)
        if claims is None:
            return None

        try:
            user = await self._users.find_by_id(claims.user_id)
        except (PyMongoError, PydanticValidationError) as e:
            log.error(
                "session_user_lookup_failed",
                user_id=claims.user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if user is None:
            log.info("session_user_missing", user_id=claims.user_id)
            return None
        if user.session_epoch != claims.epoch:
            log.info("session_revoked", user_id=claims.user_id)
            return None

        return SessionUser(user=UserProfileResponse.from_user(user), expires=claims.expires)

    def update_session(self, request: Request, response: Response) -> bool:
        """Re-sign the inbound session with a fresh window onto *response*.

        Returns:
            True if a refreshed cookie was attached, False (no mutation) when
            the inbound cookie is absent or invalid.
        """
        claims = self.read_claims(request)
        if claims is None:
            return False
        self._issue(response, claims.user_id, claims.epoch)
        return True

    async def revoke_sessions(self, user_id: str) -> Optional[int]:
        """Invalidate every outstanding token of *user_id* before its expiry.

        Returns:
            The user's new session epoch, or None if the user does not exist.
        """
        epoch = await self._users.bump_session_epoch(user_id, self._now())
        log.info("sessions_revoked", user_id=user_id, session_epoch=epoch)
        return epoch
