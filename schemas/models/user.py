"""
User document model.

Maps to the `users` MongoDB collection. A user is created unverified
(``email_verified_at`` is None) and becomes verified exactly once, by a
successful OTP verification.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel


class UserDoc(MongoBaseModel):
    """
    Document model for the `users` collection.

    ``email`` is unique (enforced by index) and compared exactly as stored.
    ``session_epoch`` is bumped to invalidate every outstanding session
    token of the user at once.
    """

    name: str
    email: str
    password_hash: str
    image: Optional[str] = None
    location: Optional[str] = None
    email_verified_at: Optional[datetime] = None
    session_epoch: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None
