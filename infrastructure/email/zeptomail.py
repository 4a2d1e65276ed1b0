"""ZeptoMail implementation of EmailProvider.

Posts the verification message to the ZeptoMail HTTP API through the shared
async httpx client. The HTML part is rendered from templates/emails with
Jinja2 (autoescaped); the plain-text part is built inline.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.email.protocol import EmailDeliveryError
from shared.logging import get_logger

log = get_logger(__name__)

ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_AUTH_PREFIX = "Zoho-enczapikey "
_ACCEPTED_STATUSES = frozenset({200, 201, 202})
_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

VERIFICATION_SUBJECT = "Verify Your Culinary Hub Account"


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: httpx.AsyncClient,
        app_url: str = "http://localhost:8000",
        otp_ttl_minutes: int = 10,
        template_dir: str = _TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url
        self._otp_ttl_minutes = otp_ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _authorization(self) -> str:
        token = self._settings.zepto_api_token
        return token if token.startswith(_AUTH_PREFIX) else _AUTH_PREFIX + token

    def _message(self, to_email: str, to_name: Optional[str], html: str, text: str) -> dict:
        sender = {
            "address": self._settings.zepto_from_email,
            "name": self._settings.zepto_from_name,
        }
        recipient = {"email_address": {"address": to_email, "name": to_name or to_email}}
        return {
            "from": sender,
            "to": [recipient],
            "subject": VERIFICATION_SUBJECT,
            "htmlbody": html,
            "textbody": text,
        }

    def _render(self, otp_code: str, user_name: Optional[str]) -> tuple[str, str]:
        html = self._jinja.get_template("verification.html").render(
            otp_code=otp_code,
            user_name=user_name,
            app_url=self._app_url,
            ttl_minutes=self._otp_ttl_minutes,
        )
        greeting = f"Welcome to Culinary Hub, {user_name}!" if user_name else "Welcome to Culinary Hub!"
        text = (
            f"{greeting}\n\n"
            f"Your one-time verification code is: {otp_code}\n\n"
            f"This code will expire in {self._otp_ttl_minutes} minutes.\n"
        )
        return html, text

    async def send_verification_email(
        self, email: str, otp_code: str, user_name: Optional[str] = None
    ) -> None:
        if not self._settings.zepto_api_token:
            raise EmailDeliveryError("ZeptoMail API token is not configured")

        html, text = self._render(otp_code, user_name)
        try:
            response = await self._http.post(
                ZEPTO_API_URL,
                json=self._message(email, user_name, html, text),
                headers={"Authorization": self._authorization()},
            )
        except httpx.HTTPError as e:
            log.error(
                "verification_email_transport_error",
                to_email=email,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise EmailDeliveryError(str(e)) from e

        if response.status_code not in _ACCEPTED_STATUSES:
            log.error(
                "verification_email_rejected",
                to_email=email,
                status_code=response.status_code,
                response=response.text[:200],
            )
            raise EmailDeliveryError(f"ZeptoMail returned {response.status_code}")

        log.info("verification_email_sent", to_email=email)
