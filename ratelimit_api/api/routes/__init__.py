from __future__ import annotations

from ratelimit_api.api.routes.auth import router as auth_router
from ratelimit_api.api.routes.health import router as health_router
from ratelimit_api.api.routes.status import router as status_router
from ratelimit_api.api.routes.users import router as users_router

__all__ = ["auth_router", "health_router", "status_router", "users_router"]
