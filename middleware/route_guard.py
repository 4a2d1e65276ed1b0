"""
Route Guard: per-request authentication policy.

    route class    no session          valid session
    protected      redirect /login     allow, refresh cookie
    public-only    allow               redirect /dashboard
    other          allow               allow, refresh cookie

Protected routes match by prefix ("/recipes/new" covers "/recipes/new/x"),
public-only routes match exactly. Excluded paths (API, auth form posts,
static assets) bypass the guard. A session lookup that fails for any
reason is treated as no session; the guard never errors a request.
"""

from __future__ import annotations

from enum import Enum

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from config import AppSettings
from services.auth_service import DASHBOARD_PATH, LOGIN_PATH
from services.session_manager import SessionManager
from shared.logging import get_logger

log = get_logger(__name__)


class RouteClass(str, Enum):
    PROTECTED = "protected"
    PUBLIC_ONLY = "public_only"
    OTHER = "other"


def is_excluded(path: str, settings: AppSettings) -> bool:
    if any(path == p or path.startswith(p.rstrip("/") + "/") for p in settings.guard_excluded_prefixes):
        return True
    return path.lower().endswith(tuple(settings.guard_excluded_suffixes))


def classify_route(path: str, settings: AppSettings) -> RouteClass:
    if any(path == r or path.startswith(r.rstrip("/") + "/") for r in settings.protected_routes):
        return RouteClass.PROTECTED
    if path in settings.public_only_routes:
        return RouteClass.PUBLIC_ONLY
    return RouteClass.OTHER


def _sets_cookie(response: Response, cookie_name: str) -> bool:
    prefix = f"{cookie_name}="
    return any(h.startswith(prefix) for h in response.headers.getlist("set-cookie"))


class RouteGuardMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        settings: AppSettings = request.app.state.settings
        path = request.url.path
        if is_excluded(path, settings):
            return await call_next(request)

        manager: SessionManager = request.app.state.session_manager
        session = await manager.get_session(request)
        request.state.session = session

        route_class = classify_route(path, settings)
        if route_class is RouteClass.PROTECTED and session is None:
            log.info("route_guard_redirect", path=path, to=LOGIN_PATH)
            return RedirectResponse(LOGIN_PATH, status_code=307)
        if route_class is RouteClass.PUBLIC_ONLY and session is not None:
            log.info("route_guard_redirect", path=path, to=DASHBOARD_PATH)
            return RedirectResponse(DASHBOARD_PATH, status_code=307)

        response = await call_next(request)

        # A handler that already set the cookie (sign-in, sign-out) wins
        if session is not None and not _sets_cookie(response, manager.cookie_name):
            manager.update_session(request, response)
        return response
