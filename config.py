"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).
Sub-configs are composed into AppSettings by a model_validator so each
group can also be instantiated (and tested) on its own.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "culinary-hub"


class SessionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # HS256 secret; TokenCodec refuses to start without it
    jwt_secret: str = ""
    jwt_issuer: str = "culinary-hub"
    jwt_audience: str = "culinary-hub.web"

    session_ttl_seconds: int = 8 * 60 * 60
    session_cookie_name: str = "session"

    # None means "secure only in production"
    cookie_secure: Optional[bool] = None
    cookie_samesite: str = "lax"


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_ttl_seconds: int = 600
    otp_length: int = 6

    # False keeps codes in [100000, 999999]; True draws from the full space
    otp_allow_leading_zeros: bool = False

    otp_max_issuances_per_hour: int = 5
    otp_max_failed_attempts: int = 5

    # When True, verifying against an unknown email reports an invalid code
    # instead of "User not found."
    otp_hide_unknown_email: bool = False

    otp_reissue_on_unverified_sign_in: bool = True


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@culinaryhub.app"
    zepto_from_name: str = "Culinary Hub"

    # False sends verification mail in the background with retries
    email_blocking_delivery: bool = True
    email_retry_attempts: int = 3
    email_retry_backoff_seconds: float = 1.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "http://localhost:8000"
    app_name: str = "Culinary Hub"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Route guard policy
    protected_routes: list[str] = ["/dashboard", "/recipes/new", "/profile"]
    public_only_routes: list[str] = ["/login", "/signup"]
    guard_excluded_prefixes: list[str] = [
        "/api",
        "/auth",
        "/static",
        "/_next",
        "/health",
        "/docs",
        "/openapi.json",
        "/favicon.ico",
    ]
    guard_excluded_suffixes: list[str] = [".png", ".jpg", ".svg", ".ico", ".css", ".js"]

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    session: Optional[SessionSettings] = None
    otp: Optional[OtpSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.session is None:
            self.session = SessionSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def cookie_secure(self) -> bool:
        if self.session.cookie_secure is not None:
            return self.session.cookie_secure
        return self.is_production
