"""
Page endpoints guarded by the route guard.

Rendering lives in the web client; these handlers only describe which page
was reached and by whom, which is all the identity service decides.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from dependencies import get_current_session, require_session
from schemas.models.session import SessionUser

router = APIRouter(tags=["pages"])


def _page(name: str, session: Optional[SessionUser]) -> dict:
    return {
        "page": name,
        "user": session.user.model_dump(mode="json") if session else None,
    }


@router.get("/")
async def home(session: Optional[SessionUser] = Depends(get_current_session)) -> dict:
    return _page("home", session)


@router.get("/recipes")
async def recipes(session: Optional[SessionUser] = Depends(get_current_session)) -> dict:
    return _page("recipes", session)


@router.get("/login")
async def login(session: Optional[SessionUser] = Depends(get_current_session)) -> dict:
    return _page("login", session)


@router.get("/signup")
async def signup(session: Optional[SessionUser] = Depends(get_current_session)) -> dict:
    return _page("signup", session)


@router.get("/verify-otp")
async def verify_otp(
    email: str = "",
    session: Optional[SessionUser] = Depends(get_current_session),
) -> dict:
    page = _page("verify-otp", session)
    page["email"] = email
    return page


@router.get("/dashboard")
async def dashboard(session: SessionUser = Depends(require_session)) -> dict:
    return _page("dashboard", session)


@router.get("/recipes/new")
async def new_recipe(session: SessionUser = Depends(require_session)) -> dict:
    return _page("recipes/new", session)


@router.get("/profile")
async def profile(session: SessionUser = Depends(require_session)) -> dict:
    return _page("profile", session)
