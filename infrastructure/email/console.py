"""Development EmailProvider that writes verification codes to the log.

Used when no ZeptoMail token is configured outside production, so sign-up
works locally without a mail account.
"""

from typing import Optional

from shared.logging import get_logger

log = get_logger(__name__)


class ConsoleEmailProvider:
    async def send_verification_email(
        self, email: str, otp_code: str, user_name: Optional[str] = None
    ) -> None:
        log.warning("dev_verification_email", to_email=email, dev_verification_code=otp_code)
