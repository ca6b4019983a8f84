"""Global exception handlers for consistent error responses.

Every error leaves the API in the same envelope::

    {"success": false, "error": {"message": "...", "type": "..."}}

Design:
- RateLimitExceededError → 429 with the tier message/type and Retry-After
- AppError subclasses → 400 / 401
- Starlette HTTP errors (404, 405, ...) → NOT_FOUND / METHOD_NOT_ALLOWED / HTTP_ERROR
- Request validation errors → 400 VALIDATION_ERROR
- Unexpected Exception → generic 500 SERVER_ERROR (safety net)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ratelimit_api.core.errors import (
    AppError,
    AuthenticationAppError,
    RateLimitExceededError,
)
from ratelimit_api.core.logging import get_request_id

logger = logging.getLogger(__name__)


def error_body(message: str, error_type: str | None = None, details: Any = None) -> dict[str, Any]:
    """Build the error envelope shared by every handler."""

    error: dict[str, Any] = {"message": message}
    if error_type:
        error["type"] = error_type
    if details:
        error["details"] = details
    return {"success": False, "error": error}


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render a rate limit denial.

    The denial was already logged by the policy's ``on_limit_exceeded``
    hook, so this handler does not log again.
    """

    return JSONResponse(
        status_code=429,
        content=error_body(exc.message, exc.code),
        headers={"Retry-After": str(exc.retry_after_seconds)},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - AuthenticationAppError → 401 Unauthorized
    - any other AppError → 400 Bad Request (client fault)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = 400
    if isinstance(exc, AuthenticationAppError):
        status_code = 401

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.message, exc.code, exc.details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap router-level HTTP errors (unknown route, wrong method) in the envelope."""

    if exc.status_code == 404:
        query = f"?{request.url.query}" if request.url.query else ""
        body = error_body(f"Route {request.url.path}{query} not found", "NOT_FOUND")
    elif exc.status_code == 405:
        body = error_body(
            f"Method {request.method} not allowed on {request.url.path}",
            "METHOD_NOT_ALLOWED",
        )
    else:
        body = error_body(str(exc.detail), "HTTP_ERROR")

    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies become 400 VALIDATION_ERROR."""

    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    logger.info(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "fields": fields,
        },
    )
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request body", "VALIDATION_ERROR", {"fields": fields}),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message, so no stack traces or internals reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content=error_body("Internal Server Error", "SERVER_ERROR"),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Starlette resolves handlers along the exception's MRO, so the rate limit
    handler wins over the generic AppError one.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
