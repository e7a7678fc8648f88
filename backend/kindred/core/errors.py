"""
Error taxonomy and FastAPI exception handlers.

Every error leaves the API in the same envelope:

    {"success": false, "error": "Human-readable message"}

Service code raises KindredError subclasses; route code may also raise
fastapi.HTTPException. Both are translated here, keeping the status code and
any rate-limit headers.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from kindred.core.responses import error_response

logger = logging.getLogger(__name__)

_PASSTHROUGH_HEADERS = {"Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining"}


class KindredError(Exception):
    """Base class for errors whose message is safe to show to the client."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, headers: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class ValidationError(KindredError):
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(KindredError):
    # Conflicts are reported as 400 to keep the client contract unchanged
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(KindredError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(KindredError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(KindredError):
    status_code = status.HTTP_404_NOT_FOUND


class RateLimited(KindredError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class UpstreamError(KindredError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _safe_headers(headers: Optional[dict]) -> Optional[dict]:
    if not headers:
        return None
    return {k: v for k, v in headers.items() if k in _PASSTHROUGH_HEADERS} or None


async def kindred_error_handler(request: Request, exc: KindredError):
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.message, exc.status_code, headers=_safe_headers(exc.headers))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.url.path}: {detail}")
    return error_response(detail, exc.status_code, headers=_safe_headers(exc.headers))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(f"Validation error on {request.method} {request.url.path}: {len(errors)} error(s)")
    if len(errors) == 1:
        error = errors[0]
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = f"{field}: {error.get('msg')}" if field else error.get("msg", "Invalid request")
    else:
        message = f"Validation failed with {len(errors)} error(s)"
    return error_response(message, status.HTTP_400_BAD_REQUEST)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KindredError, kindred_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
