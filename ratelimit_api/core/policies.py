"""Rate limit policies and the registry of named tiers.

A policy is an immutable description of one tier: window length, request
cap, the 429 message/type, how the client key is derived and what happens
when the cap is exceeded. Each policy keeps its own counters in the store;
tiers never share quota.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Callable, Iterator

from fastapi import Request

from ratelimit_api.core.client_ip import client_ip_from_request
from ratelimit_api.core.config import RateLimitSettings

if TYPE_CHECKING:
    from ratelimit_api.adapters.rate_limit.base import RateLimitResult

logger = logging.getLogger(__name__)

GENERAL = "general"
STRICT = "strict"
API = "api"
CREATE_ACCOUNT = "createAccount"

KeyFunc = Callable[[Request], str]
LimitExceededHook = Callable[[Request, "RateLimitPolicy", "RateLimitResult", str], None]


def log_limit_exceeded(
    request: Request,
    policy: RateLimitPolicy,
    result: RateLimitResult,
    client_key: str,
) -> None:
    """Default denial side effect: one structured warning per denied request."""

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "policy": policy.name,
            "error_type": policy.error_type,
            "ip": client_key,
            "user_agent": request.headers.get("user-agent"),
            "url": str(request.url.path)
            + (f"?{request.url.query}" if request.url.query else ""),
            "method": request.method,
            "limit": result.limit,
            "reset_at": result.reset_at,
            "retry_after_s": result.retry_after_seconds,
        },
    )


@dataclass(frozen=True)
class RateLimitPolicy:
    """One rate limit tier.

    Attributes:
        name: Registry name, also used to namespace counters.
        window_ms: Fixed window length in milliseconds.
        max_requests: Requests allowed per client per window.
        message: Text returned in the 429 body.
        error_type: Machine-readable type returned in the 429 body.
        skip_successful_requests: Refund quota when the handler answers 2xx.
        key_func: Derives the client key from the request.
        on_limit_exceeded: Side effect run once per denied request.
    """

    name: str
    window_ms: int
    max_requests: int
    message: str
    error_type: str
    skip_successful_requests: bool = False
    key_func: KeyFunc = field(default=client_ip_from_request, compare=False)
    on_limit_exceeded: LimitExceededHook = field(default=log_limit_exceeded, compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("policy name must be a non-empty string")
        if self.window_ms <= 0:
            raise ValueError(f"policy {self.name!r}: window_ms must be > 0")
        if self.max_requests <= 0:
            raise ValueError(f"policy {self.name!r}: max_requests must be > 0")


class PolicyRegistry:
    """Ordered, immutable-once-built set of named policies."""

    def __init__(self, policies: list[RateLimitPolicy] | None = None) -> None:
        self._policies: dict[str, RateLimitPolicy] = {}
        for policy in policies or []:
            self.register(policy)

    def register(self, policy: RateLimitPolicy) -> None:
        if policy.name in self._policies:
            raise ValueError(f"policy {policy.name!r} is already registered")
        self._policies[policy.name] = policy

    def get(self, name: str) -> RateLimitPolicy:
        try:
            return self._policies[name]
        except KeyError:
            raise KeyError(f"unknown rate limit policy {name!r}") from None

    def names(self) -> list[str]:
        return list(self._policies)

    def __contains__(self, name: object) -> bool:
        return name in self._policies

    def __iter__(self) -> Iterator[RateLimitPolicy]:
        return iter(self._policies.values())

    def __len__(self) -> int:
        return len(self._policies)


def _minutes(value: int) -> int:
    return value * 60 * 1000


def build_default_registry(
    rate_limit_settings: RateLimitSettings,
    *,
    trusted_hops: int | None = None,
) -> PolicyRegistry:
    """Build the general, strict, api and createAccount tiers.

    Args:
        rate_limit_settings: Window/cap overrides; defaults reproduce
            10/15min, 5/15min, 1000/15min and 3/60min.
        trusted_hops: Trusted proxy hops bound into every tier's key
            function; ``None`` defers to ``APP_TRUST_PROXY_HOPS``.

    Returns:
        Registry with the four tiers in evaluation order.
    """

    cfg = rate_limit_settings
    key_func: KeyFunc = client_ip_from_request
    if trusted_hops is not None:
        key_func = partial(client_ip_from_request, trusted_hops=trusted_hops)

    return PolicyRegistry(
        [
            RateLimitPolicy(
                name=GENERAL,
                window_ms=_minutes(cfg.general_window_minutes),
                max_requests=cfg.general_max_requests,
                message="Too many requests from this IP, please try again later.",
                error_type="RATE_LIMIT_EXCEEDED",
                key_func=key_func,
            ),
            RateLimitPolicy(
                name=STRICT,
                window_ms=_minutes(cfg.strict_window_minutes),
                max_requests=cfg.strict_max_requests,
                message="Too many attempts from this IP, please try again later.",
                error_type="STRICT_RATE_LIMIT_EXCEEDED",
                key_func=key_func,
            ),
            RateLimitPolicy(
                name=API,
                window_ms=_minutes(cfg.api_window_minutes),
                max_requests=cfg.api_max_requests,
                message="API rate limit exceeded, please try again later.",
                error_type="API_RATE_LIMIT_EXCEEDED",
                key_func=key_func,
            ),
            RateLimitPolicy(
                name=CREATE_ACCOUNT,
                window_ms=_minutes(cfg.create_account_window_minutes),
                max_requests=cfg.create_account_max_requests,
                message="Too many account creation attempts, please try again later.",
                error_type="ACCOUNT_CREATION_LIMIT_EXCEEDED",
                skip_successful_requests=True,
                key_func=key_func,
            ),
        ]
    )
