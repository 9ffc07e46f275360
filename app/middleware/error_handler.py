"""Exception handlers turning failures into structured JSON bodies.

Every error body has the same shape::

    {"error": "<kind>", "message": "...", "path": "..."}

Booking engine failures use their kind (``SlotBlocked``, ``NotOwner``...)
so clients can branch on ``error`` without parsing messages.
"""

from typing import Any

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException

logger = structlog.get_logger(__name__)


def error_response(
    request: Request,
    status_code: int,
    kind: str,
    message: Any,
    **extra: Any,
) -> JSONResponse:
    """Build the common error body."""
    content = {"error": kind, "message": message, "path": str(request.url), **extra}
    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render application and booking failures.

    These are expected outcomes of a request (a blocked slot, a denied
    transition), so they are logged at info level.
    """
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=exc.error_kind,
        status_code=exc.status_code,
        message=exc.message,
    )
    return error_response(request, exc.status_code, exc.error_kind, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors such as failed authentication."""
    response = error_response(request, exc.status_code, "HTTPException", exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render request validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        422 response listing every failing field
    """
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for bugs; the body never leaks internals."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )
