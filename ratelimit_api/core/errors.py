"""Application-level exception types.

This module defines domain errors raised by routes and the rate limiting
layer, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    field: str
    hint: str
    policy: str
    retry_after: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error type (e.g. ``VALIDATION_ERROR``).
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when credentials are rejected."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised by a rate limit gate when a client exhausted a policy's quota.

    ``code`` carries the tier-specific type (e.g.
    ``STRICT_RATE_LIMIT_EXCEEDED``) and ``message`` the tier-specific text,
    both rendered verbatim in the 429 body.
    """

    policy: str = ""
    limit: int = 0
    reset_at_ms: int = 0
    retry_after_seconds: int = 0
