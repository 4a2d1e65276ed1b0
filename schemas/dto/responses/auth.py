"""
Response DTOs for authentication endpoints.

UserProfileResponse:  public view of a user (no password hash, ever)
SessionResponse:      GET /api/session when signed in
FormStateResponse:    success shape of a form submission that does not redirect
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class UserProfileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    image: Optional[str] = None
    location: Optional[str] = None
    email_verified: bool
    email_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserProfileResponse":
        """Build the profile from a UserDoc."""
        return cls(
            id=user.str_id,
            name=user.name,
            email=user.email,
            image=user.image,
            location=user.location,
            email_verified=user.is_verified,
            email_verified_at=user.email_verified_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class SessionResponse(BaseModel):
    """Response body for GET /api/session (200) when a session exists."""

    user: UserProfileResponse
    expires: datetime


class FormStateResponse(BaseModel):
    status: Literal["success", "error"]
    message: str
