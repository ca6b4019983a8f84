from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (rate limit state, middleware, handlers,
routers) so every app instance owns its own counters. Tests build a fresh
app per case and never share quota.
"""

import time
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ratelimit_api.adapters.rate_limit.base import AbstractWindowStore
from ratelimit_api.adapters.rate_limit.in_memory import InMemoryWindowStore
from ratelimit_api.api.routes import auth_router, health_router, status_router, users_router
from ratelimit_api.core.config import Settings, settings as default_settings
from ratelimit_api.core.exception_handlers import setup_exception_handlers
from ratelimit_api.core.logging import configure_logging
from ratelimit_api.core.middleware import request_id_middleware
from ratelimit_api.core.openapi import apply_openapi_customizations
from ratelimit_api.core.policies import GENERAL, PolicyRegistry, build_default_registry
from ratelimit_api.core.rate_limit import (
    RateLimitEvaluator,
    rate_limit_middleware,
    validate_route_policies,
)


def create_app(
    app_settings: Settings | None = None,
    *,
    registry: PolicyRegistry | None = None,
    store: AbstractWindowStore | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build from; defaults to the process settings.
        registry: Policy registry override; defaults to the four standard tiers.
        store: Counter store override; defaults to a fresh in-memory store.
        clock: Time source (UNIX seconds) shared by the store and evaluator.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ValueError: If a route references an unregistered policy.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    if registry is None:
        registry = build_default_registry(
            cfg.rate_limit, trusted_hops=cfg.app.trust_proxy_hops
        )
    if store is None:
        store = InMemoryWindowStore(
            clock=clock,
            sweep_interval_seconds=cfg.rate_limit.sweep_interval_seconds,
        )

    app = FastAPI(
        title=cfg.app.name,
        description=(
            "Demo API with tiered fixed-window rate limiting per client IP: "
            "general (all routes), strict (login/register), api (bulk API "
            "routes) and account creation (failed attempts only)."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
    )
    app.state.rate_limiter = RateLimitEvaluator.from_settings(
        registry,
        store,
        cfg.rate_limit,
        # The general tier counts every request, routed or not, before route gates
        global_policies=(GENERAL,),
        clock=clock,
    )

    # Middleware (last added runs first)
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)
    # Outermost: preflight requests are answered before rate limiting
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.app.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            cfg.log.request_id_header,
            "RateLimit-Limit",
            "RateLimit-Remaining",
            "RateLimit-Reset",
            "Retry-After",
        ],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(status_router)
    app.include_router(users_router)
    app.include_router(auth_router)
    app.include_router(health_router)

    validate_route_policies(app, registry)

    apply_openapi_customizations(app)

    return app
