"""Pydantic schemas for the informational endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ratelimit_api.schemas.rate_limit import RateLimitedResponse, RateLimitStatusInfo


class User(BaseModel):
    id: int
    name: str
    email: str


class UserListResponse(RateLimitedResponse):
    data: list[User]


class HelloResponse(RateLimitedResponse):
    message: str = "Hello World"
    environment: str | None = None


class RateLimitStatusResponse(RateLimitedResponse):
    message: str = "Rate limit status"
    rate_limit: RateLimitStatusInfo = Field(
        default_factory=RateLimitStatusInfo,
        alias="rateLimit",
    )


class RateLimitDemoResponse(RateLimitedResponse):
    message: str = "Keep hitting this endpoint to test rate limiting!"
    tip: str = "Try refreshing this page quickly to see rate limiting in action"


class HealthResponse(BaseModel):
    status: str = "ok"
