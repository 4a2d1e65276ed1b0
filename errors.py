"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to the form-submission shape the web client
consumes:

    {"status": "error", "message": ..., "code": ..., "field_errors": {...}}

Non-AppError exceptions become a generic 500 (with Sentry reporting in
production). Messages never carry stack traces or internal identifiers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"
    default_message: str = "An internal server error occurred."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        field: Optional[str] = None,
        field_errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.field = field
        self.field_errors = field_errors

    def to_form_state(self) -> dict:
        payload: dict = {
            "status": "error",
            "message": self.message,
            "code": self.error_code,
        }
        field_errors = dict(self.field_errors or {})
        if self.field is not None:
            field_errors.setdefault(self.field, [self.message])
        if field_errors:
            payload["field_errors"] = field_errors
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid form data."


class CredentialsInvalidError(AppError):
    """Wrong email or password; the message never says which."""

    status_code = 401
    error_code = "invalid_credentials"
    default_message = "Invalid credentials. Please try again."


class AlreadyRegisteredError(AppError):
    status_code = 409
    error_code = "already_registered"
    default_message = "A user with this email already exists."

    def __init__(self, message: Optional[str] = None, **kwargs) -> None:
        kwargs.setdefault("field", "email")
        super().__init__(message, **kwargs)


class OtpInvalidOrExpiredError(AppError):
    status_code = 400
    error_code = "otp_invalid_or_expired"
    default_message = "Invalid or expired OTP."

    def __init__(self, message: Optional[str] = None, **kwargs) -> None:
        kwargs.setdefault("field", "otp")
        super().__init__(message, **kwargs)


class NotAuthenticatedError(AppError):
    status_code = 401
    error_code = "not_authenticated"
    default_message = "Please sign in to continue."


class UserNotFoundError(AppError):
    status_code = 404
    error_code = "user_not_found"
    default_message = "User not found."


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"
    default_message = "Too many verification codes requested. Please try again later."


class TransientStoreError(AppError):
    """Any store or delivery failure inside an auth flow."""

    status_code = 503
    error_code = "transient_store_failure"
    default_message = "An unexpected error occurred. Please try again."


def field_errors_from_request_validation(exc: RequestValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [part for part in err.get("loc", ()) if part not in ("body", "query")]
        key = str(loc[0]) if loc else "__root__"
        errors.setdefault(key, []).append(err.get("msg", "Invalid value"))
    return errors


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_form_state())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        err = ValidationError(field_errors=field_errors_from_request_validation(exc))
        return JSONResponse(status_code=err.status_code, content=err.to_form_state())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "An internal server error occurred.",
                "code": "internal_error",
            },
        )
