"""Tests for rate limit policies and the default registry."""

import pytest

from ratelimit_api.core.config import RateLimitSettings
from ratelimit_api.core.policies import (
    API,
    CREATE_ACCOUNT,
    GENERAL,
    STRICT,
    PolicyRegistry,
    RateLimitPolicy,
    build_default_registry,
)


def _policy(**overrides) -> RateLimitPolicy:
    fields = {
        "name": "p",
        "window_ms": 1000,
        "max_requests": 1,
        "message": "m",
        "error_type": "P_RATE_LIMIT_EXCEEDED",
    }
    fields.update(overrides)
    return RateLimitPolicy(**fields)


class TestDefaultRegistry:
    @pytest.fixture
    def registry(self) -> PolicyRegistry:
        return build_default_registry(RateLimitSettings())

    def test_tiers_in_evaluation_order(self, registry: PolicyRegistry) -> None:
        assert registry.names() == [GENERAL, STRICT, API, CREATE_ACCOUNT]

    @pytest.mark.parametrize(
        "name, window_ms, max_requests, error_type, skip",
        [
            (GENERAL, 900_000, 10, "RATE_LIMIT_EXCEEDED", False),
            (STRICT, 900_000, 5, "STRICT_RATE_LIMIT_EXCEEDED", False),
            (API, 900_000, 1000, "API_RATE_LIMIT_EXCEEDED", False),
            (CREATE_ACCOUNT, 3_600_000, 3, "ACCOUNT_CREATION_LIMIT_EXCEEDED", True),
        ],
    )
    def test_tier_configuration(
        self,
        registry: PolicyRegistry,
        name: str,
        window_ms: int,
        max_requests: int,
        error_type: str,
        skip: bool,
    ) -> None:
        policy = registry.get(name)

        assert policy.window_ms == window_ms
        assert policy.max_requests == max_requests
        assert policy.error_type == error_type
        assert policy.skip_successful_requests is skip

    def test_strict_message(self, registry: PolicyRegistry) -> None:
        assert registry.get(STRICT).message == "Too many attempts from this IP, please try again later."

    def test_settings_override_windows_and_caps(self) -> None:
        registry = build_default_registry(
            RateLimitSettings(strict_max_requests=2, strict_window_minutes=1)
        )

        assert registry.get(STRICT).max_requests == 2
        assert registry.get(STRICT).window_ms == 60_000

    def test_unknown_policy_raises_key_error(self, registry: PolicyRegistry) -> None:
        with pytest.raises(KeyError):
            registry.get("nope")

    def test_membership_and_length(self, registry: PolicyRegistry) -> None:
        assert STRICT in registry
        assert "nope" not in registry
        assert len(registry) == 4


class TestPolicyValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"window_ms": 0},
            {"window_ms": -5},
            {"max_requests": 0},
            {"name": ""},
        ],
    )
    def test_invalid_policy_fails_fast(self, overrides: dict) -> None:
        with pytest.raises(ValueError):
            _policy(**overrides)

    def test_duplicate_registration_rejected(self) -> None:
        registry = PolicyRegistry([_policy(name="a")])

        with pytest.raises(ValueError):
            registry.register(_policy(name="a"))

    def test_policy_is_immutable(self) -> None:
        policy = _policy()

        with pytest.raises(AttributeError):
            policy.max_requests = 100  # type: ignore[misc]


def test_trusted_hops_are_bound_into_every_tier(make_request) -> None:
    registry = build_default_registry(RateLimitSettings(), trusted_hops=0)
    request = make_request(ip="10.0.0.1", headers={"X-Forwarded-For": "203.0.113.7"})

    assert {policy.key_func(request) for policy in registry} == {"10.0.0.1"}
