from __future__ import annotations

from fastapi import APIRouter, Request

from ratelimit_api.core.config import settings
from ratelimit_api.schemas.common import (
    HelloResponse,
    RateLimitDemoResponse,
    RateLimitStatusResponse,
)
from ratelimit_api.schemas.rate_limit import RateLimitInfo, RateLimitStatusInfo

router = APIRouter(tags=["Rate Limit"])


@router.get("/", response_model=HelloResponse)
async def root(request: Request) -> HelloResponse:
    """Greeting with the current environment and the caller's quota."""

    return HelloResponse(
        environment=settings.app_env,
        rate_limit=RateLimitInfo.from_request(request),
    )


@router.get("/rate-limit-status", response_model=RateLimitStatusResponse)
async def rate_limit_status(request: Request) -> RateLimitStatusResponse:
    """Report the caller's general tier quota (this call included)."""

    return RateLimitStatusResponse(rate_limit=RateLimitStatusInfo.from_request(request))


@router.get("/test-rate-limit", response_model=RateLimitDemoResponse)
async def test_rate_limit(request: Request) -> RateLimitDemoResponse:
    """Endpoint meant to be hammered to watch the general tier kick in."""

    return RateLimitDemoResponse(rate_limit=RateLimitInfo.from_request(request))
