"""
GET /api/session: the caller's session for client-side code.

Returns the SessionResponse shape when signed in and ``{}`` otherwise,
never an error status for a missing or stale session.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from dependencies import get_current_session
from schemas.dto.responses.auth import SessionResponse
from schemas.models.session import SessionUser

router = APIRouter(prefix="/api", tags=["session"])


@router.get("/session")
async def read_session(
    session: Optional[SessionUser] = Depends(get_current_session),
) -> dict:
    if session is None:
        return {}
    return SessionResponse(user=session.user, expires=session.expires).model_dump(mode="json")
