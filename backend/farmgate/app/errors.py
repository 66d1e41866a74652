"""Domain error taxonomy and its HTTP rendering."""
from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .logging import get_logger

logger = get_logger("farmgate.errors")


class FarmgateError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_detail: str = "Something went wrong"

    def __init__(self, detail: str | None = None, **context: Any) -> None:
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)


class InvalidRoleError(FarmgateError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_role"
    default_detail = "Invalid role"


class MissingTokenError(FarmgateError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "missing_token"
    default_detail = "Access token required"


class InvalidTokenError(FarmgateError):
    """Token is malformed, carries a bad signature, or has expired."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "invalid_token"
    default_detail = "Invalid token"


class ForbiddenError(FarmgateError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Insufficient permissions"


class NotFoundError(FarmgateError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Resource not found"


class InvalidTransitionError(FarmgateError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"
    default_detail = "Order status transition is not allowed"


class DownstreamUnavailableError(FarmgateError):
    """An external store, notifier or data provider could not be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "downstream_unavailable"
    default_detail = "A downstream service is unavailable"


async def _handle_farmgate_error(request: Request, exc: FarmgateError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("request_failed", path=request.url.path, error=exc.code, detail=exc.detail)
    headers = None
    if isinstance(exc, MissingTokenError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.code},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    """Render :class:`FarmgateError` subclasses as structured JSON responses."""

    app.add_exception_handler(FarmgateError, _handle_farmgate_error)


__all__ = [
    "DownstreamUnavailableError",
    "FarmgateError",
    "ForbiddenError",
    "InvalidRoleError",
    "InvalidTokenError",
    "InvalidTransitionError",
    "MissingTokenError",
    "NotFoundError",
    "install_error_handlers",
]
