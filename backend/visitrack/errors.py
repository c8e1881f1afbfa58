"""Error types and exception handlers.

Every error leaves the API as ``{"message": ..., "error": ...}`` so the
admin client can show ``message`` inline. Services raise the ``APIError``
subclasses below; FastAPI's own ``HTTPException`` and request validation
errors are rendered in the same shape.

Usage:
    from visitrack.errors import NotFoundError

    if visitor is None:
        raise NotFoundError("Visitor not found", visitor_id=visitor_id)
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error body"""
    message: str
    error: str
    context: Optional[dict[str, Any]] = None


class APIError(Exception):
    """Base class for API errors"""

    status_code: int = 500
    error: str = "internal_error"
    message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.__class__.message
        self.context = context or None
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(message=self.message, error=self.error, context=self.context)


class BadRequestError(APIError):
    status_code = 400
    error = "bad_request"
    message = "Invalid request"


class UnauthorizedError(APIError):
    status_code = 401
    error = "unauthorized"
    message = "Authentication required"


class ForbiddenError(APIError):
    status_code = 403
    error = "forbidden"
    message = "Access denied"


class NotFoundError(APIError):
    status_code = 404
    error = "not_found"
    message = "Resource not found"


class ConflictError(APIError):
    status_code = 409
    error = "conflict"
    message = "Resource already exists"


def _status_to_error_type(status_code: int) -> str:
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        429: "rate_limited",
        500: "internal_error",
    }
    return mapping.get(status_code, "error")


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    logger.warning(
        "API error: %s (status=%d, path=%s)",
        exc.message,
        exc.status_code,
        request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            message=str(exc.detail),
            error=_status_to_error_type(exc.status_code),
        ).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _format_validation_errors(exc)
    logger.info("Validation failed: %s (path=%s)", message, request.url.path)
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(message=message, error="validation_error").model_dump(exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
