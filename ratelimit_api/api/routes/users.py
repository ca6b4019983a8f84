from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ratelimit_api.core.policies import API
from ratelimit_api.core.rate_limit import rate_limit
from ratelimit_api.schemas.common import UserListResponse
from ratelimit_api.schemas.rate_limit import RateLimitInfo
from ratelimit_api.services.user_service import list_users

router = APIRouter(prefix="/api", tags=["Users"])


@router.get(
    "/users",
    response_model=UserListResponse,
    dependencies=[Depends(rate_limit(API))],
)
async def get_users(request: Request) -> UserListResponse:
    """List the demo users.

    Subject to the general tier and the higher-volume api tier.
    """

    return UserListResponse(
        data=list_users(),
        rate_limit=RateLimitInfo.from_request(request),
    )
