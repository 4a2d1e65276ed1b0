"""
Request DTOs for the authentication forms.

SignUpRequest:     POST /auth/signup
SignInRequest:     POST /auth/signin
VerifyOtpRequest:  POST /auth/verify-otp
ResendOtpRequest:  POST /auth/resend-otp

Field validators raise PydanticCustomError so the message shown next to
each form field is exactly the text from shared.validators. Use
parse_form() to turn a raw body into a DTO or an errors.ValidationError.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from errors import ValidationError
from shared.validators import (
    validate_email,
    validate_name,
    validate_new_password,
    validate_otp,
)

FormModel = TypeVar("FormModel", bound=BaseModel)


def _check(message: Optional[str], value: Any) -> Any:
    if message is not None:
        raise PydanticCustomError("form_field", message)
    return value


class _FormBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Passwords are taken verbatim; only identifying fields are trimmed.
    @field_validator("email", "name", "otp", mode="before", check_fields=False)
    @classmethod
    def _strip(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", check_fields=False)
    @classmethod
    def _email_shape(cls, v: str) -> str:
        return _check(validate_email(v), v)


class SignUpRequest(_FormBase):
    """Sign-up form. ``confirmPassword`` is checked here and never persisted."""

    name: str
    email: str
    password: str = Field(json_schema_extra={"format": "password"})
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        return _check(validate_name(v), v)

    @field_validator("password")
    @classmethod
    def _password_length(cls, v: str) -> str:
        return _check(validate_new_password(v), v)

    @field_validator("confirm_password")
    @classmethod
    def _passwords_match(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        password = info.data.get("password")
        if v is not None and password is not None and v != password:
            raise PydanticCustomError("form_field", "Passwords do not match.")
        return v


class SignInRequest(_FormBase):
    email: str
    password: str

    @field_validator("password")
    @classmethod
    def _password_present(cls, v: str) -> str:
        return _check(None if v else "Password is required.", v)


class VerifyOtpRequest(_FormBase):
    """``otp`` is the code from the verification email.

    Its length defaults to 6 digits; pass ``{"otp_length": n}`` as the
    validation context when codes are issued with a different length.
    """

    email: str
    otp: str

    @field_validator("otp")
    @classmethod
    def _otp_shape(cls, v: str, info: ValidationInfo) -> str:
        length = (info.context or {}).get("otp_length", 6)
        return _check(validate_otp(v, length), v)


class ResendOtpRequest(_FormBase):
    email: str


def parse_form(
    model: Type[FormModel],
    data: Mapping[str, Any],
    context: Optional[dict[str, Any]] = None,
) -> FormModel:
    """Validate *data* into *model*, raising errors.ValidationError on failure.

    The raised error carries ``field_errors`` keyed by the submitted field
    name (aliases included), mirroring what the form renders.
    """
    try:
        return model.model_validate(dict(data), context=context)
    except PydanticValidationError as exc:
        field_errors: dict[str, list[str]] = {}
        for err in exc.errors():
            key = str(err["loc"][0]) if err.get("loc") else "__root__"
            message = err["msg"]
            if err["type"] == "missing":
                message = "This field is required."
            field_errors.setdefault(key, []).append(message)
        raise ValidationError(field_errors=field_errors) from exc
