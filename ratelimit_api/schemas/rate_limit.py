"""Pydantic schemas exposing rate limit quota in response bodies."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field

from ratelimit_api.adapters.rate_limit.base import RateLimitResult


def epoch_ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def current_rate_limit(request: Request) -> RateLimitResult | None:
    """Quota of the last policy the request was evaluated against, if any."""

    return getattr(request.state, "rate_limit", None)


class RateLimitInfo(BaseModel):
    """Quota left for the caller under the last evaluated policy.

    All fields are null when rate limiting is disabled.
    """

    limit: int | None = Field(None, description="Requests allowed per window.")
    remaining: int | None = Field(None, description="Requests left in the current window.")
    reset: datetime | None = Field(None, description="When the current window ends (UTC).")

    @classmethod
    def from_request(cls, request: Request) -> RateLimitInfo:
        result = current_rate_limit(request)
        if result is None:
            return cls()
        return cls(
            limit=result.limit,
            remaining=result.remaining,
            reset=epoch_ms_to_datetime(result.reset_at),
        )


class RateLimitStatusInfo(RateLimitInfo):
    """RateLimitInfo plus the raw reset time in epoch milliseconds."""

    model_config = ConfigDict(populate_by_name=True)

    reset_time: int | None = Field(
        None,
        alias="resetTime",
        description="Window end as UNIX epoch milliseconds.",
    )

    @classmethod
    def from_request(cls, request: Request) -> RateLimitStatusInfo:
        result = current_rate_limit(request)
        if result is None:
            return cls()
        return cls(
            limit=result.limit,
            remaining=result.remaining,
            reset=epoch_ms_to_datetime(result.reset_at),
            reset_time=result.reset_at,
        )


class RateLimitedResponse(BaseModel):
    """Base for successful responses that echo the caller's quota."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    rate_limit: RateLimitInfo = Field(
        default_factory=RateLimitInfo,
        alias="rateLimit",
    )
