"""
Session token claims and the resolved session.

SessionClaims is the fixed, validated shape of a session token payload.
Decoding rejects any payload missing ``userId`` or ``expires``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from schemas.dto.responses.auth import UserProfileResponse


class SessionClaims(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: str = Field(alias="userId", min_length=1)
    expires: datetime
    epoch: int = Field(default=0, ge=0)


class SessionUser(BaseModel):
    """What get_session() hands to callers: the user, never the password hash."""

    user: UserProfileResponse
    expires: datetime
