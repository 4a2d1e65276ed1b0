"""
Request logging middleware.

Binds a request_id into structlog's contextvars so every log line emitted
while handling the request carries it, logs one request_completed event
with status and timing, and echoes the id in X-Request-ID.
"""

from __future__ import annotations

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from shared.generators import generate_request_id
from shared.logging import get_logger

log = get_logger("culinary_hub.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = generate_request_id()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            log.error("unhandled_exception", error=str(exc), error_type=type(exc).__name__)
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        if response.status_code >= 500:
            log_fn = log.error
        elif response.status_code >= 400:
            log_fn = log.warning
        else:
            log_fn = log.info
        log_fn("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        return response
