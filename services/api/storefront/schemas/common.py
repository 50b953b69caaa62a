"""Error envelope shared by every endpoint.

All non-2xx responses look like:
    {"error": {"code": "PRODUCT_NOT_FOUND", "message": "...", "detail": null}}
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Structured error body (documented in the OpenAPI responses)."""

    error: ErrorDetail


def error_response(
    status_code: int,
    code: str,
    message: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a JSONResponse carrying the error envelope."""
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump())
