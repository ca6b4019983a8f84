"""Static user listing served by the bulk API routes."""

from __future__ import annotations

from ratelimit_api.schemas.common import User

MOCK_USERS: tuple[User, ...] = (
    User(id=1, name="John Doe", email="john@example.com"),
    User(id=2, name="Jane Smith", email="jane@example.com"),
)


def list_users() -> list[User]:
    return list(MOCK_USERS)
