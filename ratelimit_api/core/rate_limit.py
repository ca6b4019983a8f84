"""Rate limiting gates for FastAPI routes.

This module wires the policy registry and the counter store into the HTTP
layer.

- ``RateLimitEvaluator`` runs one request through one policy.
- ``rate_limit_middleware`` enforces the application-wide policies on every
  request, matched route or not, before routing. After the handler it
  refunds ``skip_successful_requests`` policies on 2xx and emits quota
  headers.
- ``rate_limit(*names)`` builds the gate dependency a route declares; gates
  run in declared order after the application-wide policies and the first
  denial wins.

The evaluator is built by the app factory and kept on ``app.state``.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from fastapi import FastAPI, Request, Response
from fastapi.routing import APIRoute

from ratelimit_api.adapters.rate_limit.base import AbstractWindowStore, RateLimitResult
from ratelimit_api.core.config import RateLimitSettings
from ratelimit_api.core.errors import RateLimitExceededError
from ratelimit_api.core.exception_handlers import rate_limit_exceeded_handler
from ratelimit_api.core.policies import PolicyRegistry, RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingRefund:
    """Compensating decrement to apply once the response status is known."""

    policy: RateLimitPolicy
    client_key: str
    window_start: int


class RateLimitEvaluator:
    """Evaluate requests against named policies backed by a counter store."""

    def __init__(
        self,
        registry: PolicyRegistry,
        store: AbstractWindowStore,
        *,
        enabled: bool = True,
        standard_headers: bool = True,
        legacy_headers: bool = False,
        global_policies: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry
        self.store = store
        self.enabled = enabled
        self.standard_headers = standard_headers
        self.legacy_headers = legacy_headers
        self.global_policies = tuple(global_policies)
        self._clock = clock

        for name in self.global_policies:
            if name not in registry:
                raise ValueError(f"application-wide rate limit policy {name!r} is not registered")

    @classmethod
    def from_settings(
        cls,
        registry: PolicyRegistry,
        store: AbstractWindowStore,
        rate_limit_settings: RateLimitSettings,
        *,
        global_policies: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ) -> RateLimitEvaluator:
        return cls(
            registry,
            store,
            enabled=rate_limit_settings.enabled,
            standard_headers=rate_limit_settings.standard_headers,
            legacy_headers=rate_limit_settings.legacy_headers,
            global_policies=global_policies,
            clock=clock,
        )

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def evaluate(self, policy_name: str, request: Request) -> RateLimitResult:
        """Count the request under ``policy_name`` and gate it.

        Allowed requests get their quota attached to ``request.state``.
        Denied requests trigger the policy's ``on_limit_exceeded`` hook once.

        Args:
            policy_name: Registered policy name.
            request: Incoming request.

        Returns:
            RateLimitResult for an allowed request.

        Raises:
            KeyError: If the policy is not registered.
            RateLimitExceededError: If the client exhausted the policy quota.
        """

        policy = self.registry.get(policy_name)
        client_key = policy.key_func(request)
        result = self.store.check(policy, client_key, now=self._clock())
        _attach_result(request, policy, result)

        if not result.allowed:
            policy.on_limit_exceeded(request, policy, result, client_key)
            raise RateLimitExceededError(
                code=policy.error_type,
                message=policy.message,
                policy=policy.name,
                limit=result.limit,
                reset_at_ms=result.reset_at,
                retry_after_seconds=result.retry_after_seconds or 0,
            )

        logger.debug(
            "rate_limit.allowed",
            extra={
                "policy": policy.name,
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at,
            },
        )

        if policy.skip_successful_requests:
            _pending_refunds(request).append(
                PendingRefund(policy=policy, client_key=client_key, window_start=result.window_start)
            )
        return result

    def evaluate_global(self, request: Request) -> None:
        """Run the application-wide policies, in order, for any request.

        Raises:
            RateLimitExceededError: On the first policy that denies.
        """

        if not self.enabled:
            return
        for name in self.global_policies:
            self.evaluate(name, request)

    def apply_refunds(self, request: Request, status_code: int) -> int:
        """Refund ``skip_successful_requests`` policies when the handler succeeded.

        The quota attached to ``request.state`` is refreshed from the store
        after each refund, so response headers report what is actually left.

        Returns:
            Number of requests refunded.
        """

        pending = getattr(request.state, "rate_limit_refunds", None)
        if not pending:
            return 0
        request.state.rate_limit_refunds = []
        if not 200 <= status_code < 300:
            return 0

        refunded = 0
        for refund in pending:
            if self.store.decrement(refund.policy, refund.client_key, refund.window_start):
                refunded += 1
                _refresh_result(request, self.store, refund)
                logger.debug(
                    "rate_limit.refunded",
                    extra={"policy": refund.policy.name, "status_code": status_code},
                )
        return refunded

    def build_headers(self, result: RateLimitResult) -> dict[str, str]:
        """Quota headers for a result, honoring the header settings."""

        headers: dict[str, str] = {}
        reset_in = max(0, math.ceil((result.reset_at - self.now_ms()) / 1000))
        if self.standard_headers:
            headers["RateLimit-Limit"] = str(result.limit)
            headers["RateLimit-Remaining"] = str(result.remaining)
            headers["RateLimit-Reset"] = str(reset_in)
        if self.legacy_headers:
            headers["X-RateLimit-Limit"] = str(result.limit)
            headers["X-RateLimit-Remaining"] = str(result.remaining)
            headers["X-RateLimit-Reset"] = str(math.ceil(result.reset_at / 1000))
        return headers


def _attach_result(request: Request, policy: RateLimitPolicy, result: RateLimitResult) -> None:
    if not hasattr(request.state, "rate_limits"):
        request.state.rate_limits = {}
    request.state.rate_limits[policy.name] = result
    request.state.rate_limit = result


def _refresh_result(request: Request, store: AbstractWindowStore, refund: PendingRefund) -> None:
    previous: RateLimitResult | None = request.state.rate_limits.get(refund.policy.name)
    snapshot = store.snapshot(refund.policy, refund.client_key)
    if previous is None or snapshot is None:
        return
    refreshed = dataclasses.replace(
        previous, remaining=max(0, refund.policy.max_requests - snapshot.count)
    )
    request.state.rate_limits[refund.policy.name] = refreshed
    if request.state.rate_limit is previous:
        request.state.rate_limit = refreshed


def _pending_refunds(request: Request) -> list[PendingRefund]:
    if not hasattr(request.state, "rate_limit_refunds"):
        request.state.rate_limit_refunds = []
    return request.state.rate_limit_refunds


def get_evaluator(request: Request) -> RateLimitEvaluator:
    """Return the evaluator owned by the running application."""

    return request.app.state.rate_limiter


def rate_limit(*policy_names: str):
    """Build a gate dependency enforcing ``policy_names`` in order.

    Usage:
        @router.post("/auth/login", dependencies=[Depends(rate_limit("strict"))])

    Raises:
        ValueError: If no policy name is given.
    """

    if not policy_names:
        raise ValueError("rate_limit() needs at least one policy name")

    async def gate(request: Request) -> None:
        evaluator = get_evaluator(request)
        if not evaluator.enabled:
            return
        for name in policy_names:
            evaluator.evaluate(name, request)

    gate.policy_names = policy_names  # type: ignore[attr-defined]
    gate.__name__ = f"rate_limit_{'_'.join(policy_names)}"
    return gate


def iter_route_policies(app: FastAPI):
    """Yield ``(path, policy name)`` for every gate declared on the app's routes."""

    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        for dependency in route.dependencies:
            for name in getattr(dependency.dependency, "policy_names", ()):
                yield route.path, name


def validate_route_policies(app: FastAPI, registry: PolicyRegistry) -> None:
    """Fail at startup when a route references an unregistered policy."""

    for path, name in iter_route_policies(app):
        if name not in registry:
            raise ValueError(f"route {path!r} references unknown rate limit policy {name!r}")


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing application-wide policies and finishing bookkeeping.

    Application-wide policies run before routing, so unknown paths and
    wrong methods are counted like any other request. After the handler,
    ``skip_successful_requests`` policies are refunded on 2xx and quota
    headers are written for the last policy the request was evaluated
    against (allowed or denied).
    """

    evaluator = get_evaluator(request)
    try:
        evaluator.evaluate_global(request)
    except RateLimitExceededError as exc:
        response: Response = await rate_limit_exceeded_handler(request, exc)
    else:
        response = await call_next(request)

    evaluator.apply_refunds(request, response.status_code)

    result: RateLimitResult | None = getattr(request.state, "rate_limit", None)
    if result is not None:
        for name, value in evaluator.build_headers(result).items():
            response.headers[name] = value
    return response
