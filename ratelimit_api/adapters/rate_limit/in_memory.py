"""In-memory fixed-window counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Windows start at a key's first request, not at wall-clock boundaries.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from ratelimit_api.adapters.rate_limit.base import (
    AbstractWindowStore,
    RateLimitResult,
    WindowSnapshot,
)

if TYPE_CHECKING:
    from ratelimit_api.core.policies import RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    window_start: int
    window_ms: int
    count: int

    def expired(self, now_ms: int) -> bool:
        return now_ms - self.window_start >= self.window_ms


class InMemoryWindowStore(AbstractWindowStore):
    """Counter store keeping one fixed window per (policy, client key).

    Counts past the policy cap keep incrementing; only the allow/deny decision
    and the reset time are observable, so a denied client is never pushed into
    a later window.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: int = 60,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            clock: Time source function returning UNIX time in seconds.
            sweep_interval_seconds: Minimum delay between sweeps of expired
                records performed during ``check``.

        Raises:
            ValueError: If sweep_interval_seconds is invalid.
        """
        if sweep_interval_seconds < 1:
            raise ValueError("sweep_interval_seconds must be >= 1")

        self._clock = clock
        self._sweep_interval_ms = sweep_interval_seconds * 1000
        self._next_sweep_ms: int | None = None
        self._lock = threading.RLock()
        self._state_by_key: dict[tuple[str, str], _WindowState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def _now_ms(self, now: float | None) -> int:
        return int((self._clock() if now is None else now) * 1000)

    def _get_or_reset_state(
        self, key: tuple[str, str], window_ms: int, now_ms: int
    ) -> _WindowState:
        """Get the current state for key or start a new window when expired.

        Args:
            key: (policy name, client key) pair.
            window_ms: Window length of the owning policy.
            now_ms: Current UNIX time in milliseconds.

        Returns:
            The current window state for this key.
        """
        state = self._state_by_key.get(key)
        if state is None or state.expired(now_ms):
            state = _WindowState(window_start=now_ms, window_ms=window_ms, count=0)
            self._state_by_key[key] = state
        return state

    def _maybe_sweep_locked(self, now_ms: int) -> None:
        if self._next_sweep_ms is None:
            self._next_sweep_ms = now_ms + self._sweep_interval_ms
            return
        if now_ms >= self._next_sweep_ms:
            self._sweep_locked(now_ms)
            self._next_sweep_ms = now_ms + self._sweep_interval_ms

    def _sweep_locked(self, now_ms: int) -> int:
        expired = [k for k, state in self._state_by_key.items() if state.expired(now_ms)]
        for key in expired:
            del self._state_by_key[key]
        if expired:
            logger.debug(
                "rate_limit.store.swept",
                extra={"removed": len(expired), "entries": len(self._state_by_key)},
            )
        return len(expired)

    def check(
        self,
        policy: RateLimitPolicy,
        client_key: str,
        now: float | None = None,
    ) -> RateLimitResult:
        """Count one request and decide whether it is allowed.

        Args:
            policy: Policy supplying ``window_ms`` and ``max_requests``.
            client_key: Identity the quota is tracked under.
            now: Optional UNIX time in seconds; defaults to the store clock.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If client_key is empty.
        """
        if not client_key:
            raise ValueError("client_key must be a non-empty string")

        now_ms = self._now_ms(now)

        with self._lock:
            self._maybe_sweep_locked(now_ms)
            state = self._get_or_reset_state((policy.name, client_key), policy.window_ms, now_ms)
            state.count += 1
            reset_at = state.window_start + state.window_ms

            if state.count <= policy.max_requests:
                return RateLimitResult(
                    allowed=True,
                    limit=policy.max_requests,
                    remaining=policy.max_requests - state.count,
                    reset_at=reset_at,
                    window_start=state.window_start,
                )

            return RateLimitResult(
                allowed=False,
                limit=policy.max_requests,
                remaining=0,
                reset_at=reset_at,
                window_start=state.window_start,
                retry_after_seconds=max(0, math.ceil((reset_at - now_ms) / 1000)),
            )

    def decrement(self, policy: RateLimitPolicy, client_key: str, window_start: int) -> bool:
        """Refund one request counted in the window starting at ``window_start``.

        A refund for a window that has since been replaced is dropped.
        """
        with self._lock:
            state = self._state_by_key.get((policy.name, client_key))
            if state is None or state.window_start != window_start or state.count <= 0:
                return False
            state.count -= 1
            return True

    def snapshot(self, policy: RateLimitPolicy, client_key: str) -> WindowSnapshot | None:
        now_ms = self._now_ms(None)
        with self._lock:
            state = self._state_by_key.get((policy.name, client_key))
            if state is None or state.expired(now_ms):
                return None
            return WindowSnapshot(
                count=state.count,
                window_start=state.window_start,
                reset_at=state.window_start + state.window_ms,
            )

    def reset_key(self, policy: RateLimitPolicy, client_key: str) -> None:
        with self._lock:
            self._state_by_key.pop((policy.name, client_key), None)

    def sweep_expired(self, now: float | None = None) -> int:
        """Drop every expired record.

        Returns:
            Number of records removed.
        """
        now_ms = self._now_ms(now)
        with self._lock:
            return self._sweep_locked(now_ms)

    def clear(self) -> None:
        """Remove all counters."""
        with self._lock:
            self._state_by_key.clear()
            self._next_sweep_ms = None
