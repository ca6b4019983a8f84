"""HTTP middleware for request correlation and access logging.

Every request/response pair carries a correlation id: the incoming
``X-Request-ID`` header (name configurable via ``LOG_REQUEST_ID_HEADER``) is
reused, otherwise a UUID4 is generated. The id lives in contextvars for the
duration of the request so every log record (including rate limit denials)
carries it.

Once the response is ready a single ``request.completed`` record is logged
with the quota the request was last evaluated against, so denials and
near-exhausted clients can be followed per request id.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from ratelimit_api.core.config import settings
from ratelimit_api.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


def _quota_fields(request: Request) -> dict:
    results = getattr(request.state, "rate_limits", None) or {}
    if not results:
        return {}
    policy, result = list(results.items())[-1]
    return {
        "rate_limit_policy": policy,
        "rate_limit_remaining": result.remaining,
        "rate_limit_allowed": result.allowed,
    }


async def request_id_middleware(request: Request, call_next) -> Response:
    """Correlate the request, time it and log its outcome.

    Returns:
        The downstream response with ``X-Request-ID`` and
        ``X-Request-Duration-ms`` headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                **_quota_fields(request),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers["X-Request-Duration-ms"] = f"{elapsed_ms:.2f}"
    return response
