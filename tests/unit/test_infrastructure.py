"""Unit tests for infrastructure/: email providers."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from config import EmailSettings
from infrastructure.email.console import ConsoleEmailProvider
from infrastructure.email.protocol import EmailDeliveryError
from infrastructure.email.zeptomail import ZeptoMailProvider


# ── ZeptoMailProvider ─────────────────────────────────────────────────────────


class TestZeptoMailProvider:
    def _make(self, token="test-token"):
        settings = EmailSettings(
            zepto_api_token=token,
            zepto_from_email="noreply@culinaryhub.example",
            zepto_from_name="Culinary Hub",
        )
        http = MagicMock()
        provider = ZeptoMailProvider(
            settings=settings, http_client=http, app_url="https://culinaryhub.example"
        )
        return provider, http

    async def test_send_verification_makes_post(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=200))

        await provider.send_verification_email("alice@example.com", "123456", "Alice")

        http.post.assert_awaited_once()
        payload = http.post.call_args.kwargs["json"]
        assert payload["to"][0]["email_address"]["address"] == "alice@example.com"
        assert "123456" in payload["htmlbody"]
        assert "123456" in payload["textbody"]
        assert "10 minutes" in payload["textbody"]

    async def test_template_escapes_user_name(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=200))

        await provider.send_verification_email("a@example.com", "123456", "<b>Al</b>")

        html = http.post.call_args.kwargs["json"]["htmlbody"]
        assert "<b>Al</b>" not in html
        assert "&lt;b&gt;Al&lt;/b&gt;" in html

    async def test_raises_when_token_empty(self):
        provider, http = self._make(token="")
        http.post = AsyncMock()
        with pytest.raises(EmailDeliveryError):
            await provider.send_verification_email("u@e.com", "000000")
        http.post.assert_not_awaited()

    async def test_raises_on_non_2xx(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=422, text="Unprocessable"))
        with pytest.raises(EmailDeliveryError):
            await provider.send_verification_email("u@e.com", "000000")

    async def test_raises_on_transport_error(self):
        provider, http = self._make()
        http.post = AsyncMock(side_effect=httpx.ConnectTimeout("timeout"))
        with pytest.raises(EmailDeliveryError):
            await provider.send_verification_email("u@e.com", "000000")

    async def test_auth_header_prepends_prefix(self):
        provider, http = self._make(token="rawtoken")
        http.post = AsyncMock(return_value=MagicMock(status_code=200))
        await provider.send_verification_email("u@e.com", "123456")
        auth = http.post.call_args.kwargs["headers"]["Authorization"]
        assert auth == "Zoho-enczapikey rawtoken"

    async def test_auth_header_not_double_prefixed(self):
        provider, http = self._make(token="Zoho-enczapikey alreadyprefixed")
        http.post = AsyncMock(return_value=MagicMock(status_code=201))
        await provider.send_verification_email("u@e.com", "654321")
        auth = http.post.call_args.kwargs["headers"]["Authorization"]
        assert auth.count("Zoho-enczapikey") == 1


# ── ConsoleEmailProvider ─────────────────────────────────────────────────────


async def test_console_provider_never_fails():
    assert await ConsoleEmailProvider().send_verification_email("a@example.com", "123456") is None
