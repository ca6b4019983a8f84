"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might load settings, so
tests never depend on a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_TRUST_PROXY_HOPS", "1")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "INFO")

from typing import Callable
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from ratelimit_api.core.app_factory import create_app

# 2023-11-14T22:13:20Z, a round number so window arithmetic stays readable
START_TIME = 1_700_000_000.0


@pytest.fixture
def clock() -> Mock:
    """Frozen time source; tests move time by setting ``clock.return_value``."""
    return Mock(return_value=START_TIME)


@pytest.fixture
def app(clock: Mock) -> FastAPI:
    """Fresh app with its own counters for each test."""
    return create_app(clock=clock)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build bare Starlette requests for evaluator-level tests."""

    def _make(
        ip: str = "1.2.3.4",
        path: str = "/auth/login",
        method: str = "POST",
        headers: dict[str, str] | None = None,
    ) -> Request:
        scope = {
            "type": "http",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "query_string": b"",
            "headers": [
                (name.lower().encode(), value.encode())
                for name, value in (headers or {}).items()
            ],
            "client": (ip, 50000),
            "server": ("testserver", 80),
        }
        return Request(scope)

    return _make
