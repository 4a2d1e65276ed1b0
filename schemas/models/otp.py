"""
One-time passcode document model.

Maps to the `otp_codes` MongoDB collection.

code_hash stores hash_otp_code(user_id, code); the plain code only ever
exists in the outgoing email. A user may hold several live records (one
per issuance); the newest matching one is consumed on verification.
attempts counts failed verifications against the user's live codes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, PyObjectId


class OtpDoc(MongoBaseModel):
    """Document model for the `otp_codes` collection."""

    user_id: PyObjectId
    code_hash: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    attempts: int = Field(default=0, ge=0)
