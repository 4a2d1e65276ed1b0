"""
FastAPI dependency providers.

All injectable dependencies are plain functions used with Depends().
Services are built once in the app lifespan (see app.install_services)
and live on app.state; nothing here holds module-level state.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from errors import NotAuthenticatedError
from schemas.models.session import SessionUser
from services.auth_service import AuthService
from services.session_manager import SessionManager

_UNRESOLVED = object()


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_current_session(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[SessionUser]:
    """The caller's session, reusing the one the route guard resolved."""
    cached = getattr(request.state, "session", _UNRESOLVED)
    if cached is not _UNRESOLVED:
        return cached
    session = await sessions.get_session(request)
    request.state.session = session
    return session


async def require_session(
    session: Optional[SessionUser] = Depends(get_current_session),
) -> SessionUser:
    if session is None:
        raise NotAuthenticatedError()
    return session
