"""EmailProvider protocol: services depend on this, not the concrete implementation."""

from typing import Optional, Protocol


class EmailDeliveryError(Exception):
    """The provider could not hand the message to its transport."""


class EmailProvider(Protocol):
    async def send_verification_email(
        self, email: str, otp_code: str, user_name: Optional[str] = None
    ) -> None:
        """Deliver *otp_code* to *email*; raise EmailDeliveryError on hard failure."""
        ...
