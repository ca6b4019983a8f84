"""Rate limiter interfaces.

The evaluator depends on this abstraction (not the concrete implementation)
so the counter storage can be swapped later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ratelimit_api.core.policies import RateLimitPolicy


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch milliseconds when the current window resets.
        window_start: UNIX epoch milliseconds when the current window began.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    window_start: int
    retry_after_seconds: int | None = None


@dataclass(frozen=True)
class WindowSnapshot:
    """Read-only view of a key's counter under one policy."""

    count: int
    window_start: int
    reset_at: int


class AbstractWindowStore(ABC):
    """Interface for per-policy, per-client request counters."""

    @abstractmethod
    def check(
        self,
        policy: RateLimitPolicy,
        client_key: str,
        now: float | None = None,
    ) -> RateLimitResult:
        """Count one request for ``client_key`` under ``policy``.

        Args:
            policy: Policy supplying the window length and cap.
            client_key: Identity the quota is tracked under (e.g. client IP).
            now: Optional UNIX time in seconds; defaults to the store clock.

        Returns:
            RateLimitResult describing whether the request is allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def decrement(self, policy: RateLimitPolicy, client_key: str, window_start: int) -> bool:
        """Undo one counted request if its window is still current.

        Returns:
            True when a request was refunded.
        """
        raise NotImplementedError

    @abstractmethod
    def snapshot(self, policy: RateLimitPolicy, client_key: str) -> WindowSnapshot | None:
        """Return the current counter state without consuming quota."""
        raise NotImplementedError

    @abstractmethod
    def reset_key(self, policy: RateLimitPolicy, client_key: str) -> None:
        """Forget the counter for one key under one policy."""
        raise NotImplementedError
