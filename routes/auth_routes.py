"""
Authentication form endpoints.

POST /auth/signup       create an unverified account and send a code
POST /auth/verify-otp   consume the code, sign the user in
POST /auth/signin       password sign-in (or back to verification)
POST /auth/signout      drop the session cookie
POST /auth/signout-all  revoke every session of the caller
POST /auth/resend-otp   send a fresh code

Bodies may be JSON or form-encoded. Successful submissions answer with a
303 redirect; failures answer with the JSON form state from errors.py.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from dependencies import get_auth_service, get_session_manager, require_session
from errors import ValidationError
from schemas.dto.responses.auth import FormStateResponse
from schemas.dto.responses.common import ErrorResponse
from schemas.models.session import SessionUser
from services.auth_service import AuthOutcome, AuthService
from services.session_manager import SessionManager

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


async def read_form_body(request: Request) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Malformed request body.")
        if not isinstance(body, dict):
            raise ValidationError("Malformed request body.")
        return body
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _finish(outcome: AuthOutcome, sessions: SessionManager) -> RedirectResponse:
    response = RedirectResponse(outcome.redirect_to, status_code=303)
    if outcome.session_user_id is not None:
        sessions.create_session(response, outcome.session_user_id, outcome.session_epoch)
    return response


@router.post("/signup", status_code=303)
async def sign_up(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
) -> RedirectResponse:
    outcome = await auth.sign_up(await read_form_body(request))
    return _finish(outcome, sessions)


@router.post("/verify-otp", status_code=303)
async def verify_otp(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
) -> RedirectResponse:
    outcome = await auth.verify_otp(await read_form_body(request))
    return _finish(outcome, sessions)


@router.post("/signin", status_code=303)
async def sign_in(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
) -> RedirectResponse:
    outcome = await auth.sign_in(await read_form_body(request))
    return _finish(outcome, sessions)


@router.post("/signout", status_code=303)
async def sign_out(
    auth: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
) -> RedirectResponse:
    response = _finish(auth.sign_out(), sessions)
    sessions.delete_session(response)
    return response


@router.post("/signout-all", status_code=303)
async def sign_out_everywhere(
    session: SessionUser = Depends(require_session),
    auth: AuthService = Depends(get_auth_service),
    sessions: SessionManager = Depends(get_session_manager),
) -> RedirectResponse:
    await sessions.revoke_sessions(session.user.id)
    response = _finish(auth.sign_out(), sessions)
    sessions.delete_session(response)
    return response


@router.post("/resend-otp", response_model=FormStateResponse)
async def resend_otp(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    outcome = await auth.resend_otp(await read_form_body(request))
    return JSONResponse(
        FormStateResponse(status=outcome.status, message=outcome.message).model_dump()
    )
