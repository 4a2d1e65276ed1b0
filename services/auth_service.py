"""
Auth Flow Orchestrator.

Drives each user through Unregistered → Registered-Unverified →
Registered-Verified:

    sign_up     validate → hash → insert user → issue OTP (→ email)
    verify_otp  resolve user → consume OTP → verified, session
    sign_in     resolve user → check password → session, or back to OTP
    sign_out    always succeeds

Every flow returns an AuthOutcome or raises an errors.AppError subclass;
store and delivery failures are logged here and re-raised as
TransientStoreError, so nothing else escapes to the transport layer.
Cookies are not touched here: the caller hands ``session_user_id`` to the
SessionManager whenever it is set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import quote

from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.concurrency import run_in_threadpool

from config import AppSettings
from errors import (
    AlreadyRegisteredError,
    AppError,
    CredentialsInvalidError,
    OtpInvalidOrExpiredError,
    RateLimitError,
    TransientStoreError,
    UserNotFoundError,
)
from infrastructure.email.protocol import EmailDeliveryError
from repositories.protocol import UserRepository
from schemas.dto.requests.auth import (
    ResendOtpRequest,
    SignInRequest,
    SignUpRequest,
    VerifyOtpRequest,
    parse_form,
)
from schemas.models.user import UserDoc
from services.otp_service import OtpService
from shared.crypto import burn_password_check, hash_password, verify_password
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

DASHBOARD_PATH = "/dashboard"
LOGIN_PATH = "/login"
VERIFY_OTP_PATH = "/verify-otp"


def verify_otp_redirect(email: str) -> str:
    return f"{VERIFY_OTP_PATH}?email={quote(email, safe='')}"


@dataclass(frozen=True)
class AuthOutcome:
    """Result of a successful form submission.

    ``session_user_id`` is set exactly when the caller must create a session.
    """

    status: str
    message: str
    redirect_to: Optional[str] = None
    session_user_id: Optional[str] = None
    session_epoch: int = 0


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        otp_service: OtpService,
        settings: AppSettings,
        now: Clock = utc_now,
    ) -> None:
        self._users = users
        self._otp = otp_service
        self._settings = settings
        self._now = now

    def _store_failure(self, event: str, e: Exception, **context: Any) -> TransientStoreError:
        log.error(event, error=str(e), error_type=type(e).__name__, **context)
        return TransientStoreError()

    async def sign_up(self, data: Mapping[str, Any]) -> AuthOutcome:
        form = parse_form(SignUpRequest, data)

        try:
            if await self._users.find_by_email(form.email) is not None:
                log.info("sign_up_rejected", reason="email_exists")
                raise AlreadyRegisteredError()

            now = self._now()
            user = await self._users.create(
                UserDoc(
                    name=form.name,
                    email=form.email,
                    password_hash=await run_in_threadpool(hash_password, form.password),
                    created_at=now,
                    updated_at=now,
                )
            )
        except DuplicateKeyError:
            # Email was registered between the lookup and the insert
            log.info("sign_up_rejected", reason="duplicate_key")
            raise AlreadyRegisteredError()
        except PyMongoError as e:
            raise self._store_failure("sign_up_failed", e, stage="create_user")

        try:
            await self._otp.issue(user.str_id, user.email, user.name)
        except Exception as e:
            await self._roll_back_sign_up(user.str_id)
            if isinstance(e, AppError):
                raise
            raise self._store_failure(
                "sign_up_failed", e, stage="issue_otp", user_id=user.str_id
            ) from e

        log.info("user_signed_up", user_id=user.str_id)
        return AuthOutcome(
            status="success",
            message="Account created. Check your email for a verification code.",
            redirect_to=verify_otp_redirect(user.email),
        )

    async def _roll_back_sign_up(self, user_id: str) -> None:
        try:
            await self._users.delete(user_id)
        except PyMongoError as e:
            log.error(
                "sign_up_rollback_failed",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        log.warning("sign_up_rolled_back", user_id=user_id)

    async def verify_otp(self, data: Mapping[str, Any]) -> AuthOutcome:
        form = parse_form(
            VerifyOtpRequest, data, context={"otp_length": self._settings.otp.otp_length}
        )

        try:
            user = await self._users.find_by_email(form.email)
            if user is None:
                log.warning("otp_verification_failed", reason="unknown_email")
                if self._settings.otp.otp_hide_unknown_email:
                    raise OtpInvalidOrExpiredError()
                raise UserNotFoundError()

            await self._otp.verify(user.str_id, form.otp)
        except PyMongoError as e:
            raise self._store_failure("otp_verification_error", e)

        log.info("user_verified", user_id=user.str_id)
        return AuthOutcome(
            status="success",
            message="Account verified successfully!",
            redirect_to=DASHBOARD_PATH,
            session_user_id=user.str_id,
            session_epoch=user.session_epoch,
        )

    async def sign_in(self, data: Mapping[str, Any]) -> AuthOutcome:
        form = parse_form(SignInRequest, data)

        try:
            user = await self._users.find_by_email(form.email)
        except PyMongoError as e:
            raise self._store_failure("sign_in_error", e)

        if user is None:
            await run_in_threadpool(burn_password_check, form.password)
            log.warning("sign_in_failed", reason="invalid_credentials")
            raise CredentialsInvalidError()

        if not await run_in_threadpool(verify_password, form.password, user.password_hash):
            log.warning("sign_in_failed", reason="invalid_credentials", user_id=user.str_id)
            raise CredentialsInvalidError()

        if not user.is_verified:
            log.info("sign_in_unverified", user_id=user.str_id)
            if self._settings.otp.otp_reissue_on_unverified_sign_in:
                await self._reissue_quietly(user)
            return AuthOutcome(
                status="success",
                message="Please verify your email to continue.",
                redirect_to=verify_otp_redirect(user.email),
            )

        log.info("user_signed_in", user_id=user.str_id)
        return AuthOutcome(
            status="success",
            message="Sign-in successful!",
            redirect_to=DASHBOARD_PATH,
            session_user_id=user.str_id,
            session_epoch=user.session_epoch,
        )

    async def _reissue_quietly(self, user: UserDoc) -> None:
        """Send a fresh code; failures never block the redirect to verification."""
        try:
            await self._otp.issue(user.str_id, user.email, user.name)
        except RateLimitError:
            log.info("otp_reissue_skipped", user_id=user.str_id, reason="rate_limited")
        except (PyMongoError, EmailDeliveryError) as e:
            log.error(
                "otp_reissue_failed",
                user_id=user.str_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def resend_otp(self, data: Mapping[str, Any]) -> AuthOutcome:
        """Send a new code. Unknown or already verified emails get the same answer."""
        form = parse_form(ResendOtpRequest, data)
        outcome = AuthOutcome(
            status="success",
            message="If the account needs verification, a new code has been sent.",
        )

        try:
            user = await self._users.find_by_email(form.email)
        except PyMongoError as e:
            raise self._store_failure("otp_resend_error", e)

        if user is None or user.is_verified:
            log.info("otp_resend_ignored", known=user is not None)
            return outcome

        try:
            await self._otp.issue(user.str_id, user.email, user.name)
        except RateLimitError:
            log.info("otp_resend_skipped", user_id=user.str_id, reason="rate_limited")
        except (PyMongoError, EmailDeliveryError) as e:
            raise self._store_failure("otp_resend_error", e, user_id=user.str_id)
        return outcome

    def sign_out(self) -> AuthOutcome:
        return AuthOutcome(status="success", message="Signed out.", redirect_to=LOGIN_PATH)
