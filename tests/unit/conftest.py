"""
Unit test configuration.

Settings in unit tests come only from monkeypatch.setenv(): the project's
.env file is never read and identity-related variables inherited from the
developer's shell are cleared.
"""

import pytest

_ISOLATED_ENV_VARS = (
    "ENV",
    "JWT_SECRET",
    "COOKIE_SECURE",
    "SESSION_TTL_SECONDS",
    "SESSION_COOKIE_NAME",
    "OTP_TTL_SECONDS",
    "OTP_ALLOW_LEADING_ZEROS",
    "OTP_HIDE_UNKNOWN_EMAIL",
    "EMAIL_BLOCKING_DELIVERY",
    "ZEPTO_API_TOKEN",
)


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch):
    """Keep .env files and stray identity env vars out of every unit test."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for var in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
