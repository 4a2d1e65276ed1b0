"""
OTP Issuer/Verifier: issues 6-digit email verification codes and
consumes them exactly once.

Only SHA-256 digests of codes are stored (see shared.crypto.hash_otp_code).
A user may hold several live codes; verification consumes the newest live
record matching the submitted code and nothing else.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

from config import EmailSettings, OtpSettings
from errors import OtpInvalidOrExpiredError, RateLimitError
from infrastructure.email.protocol import EmailDeliveryError, EmailProvider
from repositories.protocol import OtpRepository, UserRepository
from schemas.models.otp import OtpDoc
from shared.crypto import hash_otp_code
from shared.datetime_utils import Clock, utc_now
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)

RATE_LIMIT_WINDOW = timedelta(hours=1)


class OtpService:
    def __init__(
        self,
        otps: OtpRepository,
        users: UserRepository,
        email_provider: EmailProvider,
        settings: OtpSettings,
        email_settings: EmailSettings,
        now: Clock = utc_now,
    ) -> None:
        self._otps = otps
        self._users = users
        self._email = email_provider
        self._settings = settings
        self._email_settings = email_settings
        self._now = now
        self._pending_deliveries: set[asyncio.Task] = set()

    async def issue(self, user_id: str, email: str, user_name: Optional[str] = None) -> str:
        """Create, store and send a new code for *user_id*.

        Raises:
            RateLimitError: more than ``otp_max_issuances_per_hour`` codes
                were issued to this user in the last hour.
            EmailDeliveryError: blocking delivery is enabled and the
                provider failed. The stored record is kept; the caller
                decides whether to roll back.
        """
        now = self._now()
        recent = await self._otps.count_issued_since(user_id, now - RATE_LIMIT_WINDOW)
        if recent >= self._settings.otp_max_issuances_per_hour:
            log.warning("otp_issue_rate_limited", user_id=user_id, count=recent)
            raise RateLimitError()

        code = generate_otp_code(
            self._settings.otp_length,
            allow_leading_zeros=self._settings.otp_allow_leading_zeros,
        )
        record = await self._otps.create(
            OtpDoc(
                user_id=user_id,
                code_hash=hash_otp_code(user_id, code),
                expires_at=now + timedelta(seconds=self._settings.otp_ttl_seconds),
                created_at=now,
            )
        )
        log.info(
            "otp_issued",
            user_id=user_id,
            record_id=record.str_id,
            expires_at=record.expires_at.isoformat(),
        )

        if self._email_settings.email_blocking_delivery:
            await self._email.send_verification_email(email, code, user_name)
        else:
            self._deliver_in_background(user_id, email, code, user_name)

        return code

    def _deliver_in_background(
        self, user_id: str, email: str, code: str, user_name: Optional[str]
    ) -> None:
        task = asyncio.create_task(self._deliver_with_retry(user_id, email, code, user_name))
        self._pending_deliveries.add(task)
        task.add_done_callback(self._pending_deliveries.discard)

    async def _deliver_with_retry(
        self, user_id: str, email: str, code: str, user_name: Optional[str]
    ) -> bool:
        attempts = max(1, self._email_settings.email_retry_attempts)
        for attempt in range(1, attempts + 1):
            try:
                await self._email.send_verification_email(email, code, user_name)
                return True
            except EmailDeliveryError as e:
                log.warning(
                    "otp_email_retry",
                    user_id=user_id,
                    attempt=attempt,
                    error=str(e),
                )
                if attempt < attempts:
                    await asyncio.sleep(self._email_settings.email_retry_backoff_seconds * attempt)
            except Exception as e:
                log.error(
                    "otp_email_delivery_crashed",
                    user_id=user_id,
                    attempt=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return False
        log.error("otp_email_undeliverable", user_id=user_id, attempts=attempts)
        return False

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for background deliveries; cancel whatever is still running after *timeout*."""
        if not self._pending_deliveries:
            return
        _, unfinished = await asyncio.wait(set(self._pending_deliveries), timeout=timeout)
        for task in unfinished:
            task.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)
            log.warning("otp_email_deliveries_cancelled", count=len(unfinished))

    async def verify(self, user_id: str, code: str) -> None:
        """Consume *code* for *user_id* and mark the user verified.

        Raises:
            OtpInvalidOrExpiredError: no live record matches. Wrong code,
                expired code, exhausted attempts and already-consumed code
                all look the same to the caller.
        """
        now = self._now()
        record = await self._otps.consume_latest(
            user_id,
            hash_otp_code(user_id, code),
            now,
            self._settings.otp_max_failed_attempts,
        )
        if record is None:
            await self._otps.register_failed_attempt(user_id, now)
            log.warning("otp_verification_failed", user_id=user_id, reason="no_live_match")
            raise OtpInvalidOrExpiredError()

        # Re-verifying an already verified user only moves the timestamp
        await self._users.mark_verified(user_id, now)
        log.info("otp_verified", user_id=user_id, record_id=record.str_id)
