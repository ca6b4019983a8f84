"""Mock authentication and registration.

Nothing is persisted and the issued token is not verifiable: these flows
exist so the strict and account creation rate limit tiers have something
realistic to protect.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from ratelimit_api.core.errors import AuthenticationAppError, ValidationAppError
from ratelimit_api.schemas.auth import AccountData

logger = logging.getLogger(__name__)

DEMO_EMAIL = "test@example.com"
DEMO_PASSWORD = "password123"
TOKEN_PREFIX = "fake-jwt-token-"


class AuthService:
    """Login and registration against a single hard-coded demo account."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def login(self, email: str | None, password: str | None) -> str:
        """Check credentials and return a demo token.

        Raises:
            ValidationAppError: If email or password is missing.
            AuthenticationAppError: If the credentials do not match.
        """
        if not email or not password:
            raise ValidationAppError(
                code="VALIDATION_ERROR",
                message="Email and password are required",
            )

        if email != DEMO_EMAIL or password != DEMO_PASSWORD:
            raise AuthenticationAppError(
                code="INVALID_CREDENTIALS",
                message="Invalid credentials",
            )

        logger.info("auth.login_succeeded", extra={"email": email})
        return f"{TOKEN_PREFIX}{self._now_ms()}"

    def register(self, email: str | None, password: str | None, name: str | None) -> AccountData:
        """Pretend to create an account.

        Raises:
            ValidationAppError: If any of email, password or name is missing.
        """
        if not email or not password or not name:
            raise ValidationAppError(
                code="VALIDATION_ERROR",
                message="All fields (email, password, name) are required",
            )

        now_ms = self._now_ms()
        account = AccountData(
            id=now_ms,
            email=email,
            name=name,
            created_at=datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc),
        )
        logger.info("account.created", extra={"account_id": account.id, "email": email})
        return account
