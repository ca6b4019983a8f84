from __future__ import annotations

from fastapi import APIRouter

from ratelimit_api.schemas.common import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness probe for load balancers and monitoring.

    Still counted against the general tier like every other route.
    """

    return HealthResponse()
