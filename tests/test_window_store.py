"""Unit tests for the in-memory fixed-window counter store."""

from unittest.mock import Mock

import pytest

from ratelimit_api.adapters.rate_limit.in_memory import InMemoryWindowStore
from ratelimit_api.core.policies import RateLimitPolicy


def _policy(name: str = "t", window_ms: int = 10_000, max_requests: int = 3) -> RateLimitPolicy:
    return RateLimitPolicy(
        name=name,
        window_ms=window_ms,
        max_requests=max_requests,
        message="slow down",
        error_type="T_RATE_LIMIT_EXCEEDED",
    )


def test_allows_up_to_limit_with_decreasing_remaining() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=1000.0))
    policy = _policy(max_requests=3)

    results = [store.check(policy, "k") for _ in range(3)]

    assert all(r.allowed for r in results)
    assert [r.remaining for r in results] == [2, 1, 0]
    assert all(r.limit == 3 for r in results)


def test_blocks_the_request_after_the_limit() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=1000.0))
    policy = _policy(max_requests=2)

    store.check(policy, "k")
    store.check(policy, "k")
    blocked = store.check(policy, "k")

    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_at == 1_000_000 + 10_000
    assert blocked.retry_after_seconds == 10


def test_window_starts_at_first_request() -> None:
    clock = Mock(return_value=1003.5)
    store = InMemoryWindowStore(clock=clock)
    policy = _policy(window_ms=10_000, max_requests=1)

    first = store.check(policy, "k")
    assert first.window_start == 1_003_500
    assert first.reset_at == 1_013_500

    clock.return_value = 1013.4
    assert store.check(policy, "k").allowed is False


def test_resets_after_window_elapses_despite_denials() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryWindowStore(clock=clock)
    policy = _policy(window_ms=10_000, max_requests=1)

    assert store.check(policy, "k").allowed is True
    for _ in range(5):
        assert store.check(policy, "k").allowed is False

    clock.return_value = 1010.0
    result = store.check(policy, "k")
    assert result.allowed is True
    assert result.remaining == 0
    assert store.snapshot(policy, "k").count == 1


def test_count_keeps_growing_past_the_cap() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=1000.0))
    policy = _policy(max_requests=1)

    for _ in range(4):
        store.check(policy, "k")

    assert store.snapshot(policy, "k").count == 4


def test_isolated_by_key() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=1000.0))
    policy = _policy(max_requests=1)

    assert store.check(policy, "k1").allowed is True
    assert store.check(policy, "k1").allowed is False

    assert store.check(policy, "k2").allowed is True


def test_isolated_by_policy() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=1000.0))
    strict = _policy(name="strict", max_requests=1)
    general = _policy(name="general", max_requests=1)

    assert store.check(strict, "k").allowed is True
    assert store.check(strict, "k").allowed is False

    assert store.check(general, "k").allowed is True


def test_explicit_now_overrides_clock() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=0.0))
    policy = _policy()

    result = store.check(policy, "k", now=2000.0)

    assert result.window_start == 2_000_000


def test_decrement_refunds_current_window_only() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryWindowStore(clock=clock)
    policy = _policy(window_ms=10_000, max_requests=3)

    first = store.check(policy, "k")
    assert store.decrement(policy, "k", first.window_start) is True
    assert store.snapshot(policy, "k").count == 0

    # Nothing left to refund
    assert store.decrement(policy, "k", first.window_start) is False

    clock.return_value = 1020.0
    store.check(policy, "k")
    assert store.decrement(policy, "k", first.window_start) is False
    assert store.snapshot(policy, "k").count == 1


def test_decrement_unknown_key_is_noop() -> None:
    store = InMemoryWindowStore()
    assert store.decrement(_policy(), "missing", 0) is False


def test_snapshot_of_expired_window_is_none() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryWindowStore(clock=clock)
    policy = _policy(window_ms=10_000)

    store.check(policy, "k")
    clock.return_value = 1010.0

    assert store.snapshot(policy, "k") is None


def test_reset_key_forgets_one_policy() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=1000.0))
    strict = _policy(name="strict", max_requests=1)
    general = _policy(name="general", max_requests=1)
    store.check(strict, "k")
    store.check(general, "k")

    store.reset_key(strict, "k")

    assert store.check(strict, "k").allowed is True
    assert store.check(general, "k").allowed is False


def test_sweep_expired_drops_stale_records() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryWindowStore(clock=clock)
    short = _policy(name="short", window_ms=1_000)
    long = _policy(name="long", window_ms=60_000)
    store.check(short, "a")
    store.check(short, "b")
    store.check(long, "a")

    clock.return_value = 1005.0

    assert store.sweep_expired() == 2
    assert len(store) == 1


def test_check_sweeps_periodically() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryWindowStore(clock=clock, sweep_interval_seconds=60)
    policy = _policy(window_ms=1_000)
    store.check(policy, "a")
    store.check(policy, "b")

    clock.return_value = 1030.0
    store.check(policy, "c")
    assert len(store) == 3

    clock.return_value = 1061.0
    store.check(policy, "d")
    assert len(store) == 1


def test_clear_removes_everything() -> None:
    store = InMemoryWindowStore(clock=Mock(return_value=1000.0))
    store.check(_policy(), "k")

    store.clear()

    assert len(store) == 0


def test_invalid_constructor_args() -> None:
    with pytest.raises(ValueError):
        InMemoryWindowStore(sweep_interval_seconds=0)


def test_invalid_check_args() -> None:
    store = InMemoryWindowStore()

    with pytest.raises(ValueError):
        store.check(_policy(), "")
