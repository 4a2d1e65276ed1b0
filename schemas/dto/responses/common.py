"""
Common response DTOs shared across multiple endpoints.

ErrorResponse:   form-state error shape produced by AppError.to_form_state()
HealthResponse:  GET /health
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    status: str = "error"
    message: str
    code: str
    field_errors: Optional[dict[str, list[str]]] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    checks: dict[str, str]
