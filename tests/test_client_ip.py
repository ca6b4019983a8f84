"""Unit tests for proxy-aware client IP resolution."""

import pytest

from ratelimit_api.core.client_ip import (
    client_ip_from_request,
    parse_forwarded_for,
    resolve_client_ip,
)


class TestParseForwardedFor:
    def test_splits_and_trims(self) -> None:
        assert parse_forwarded_for("203.0.113.7 ,10.0.0.2") == ["203.0.113.7", "10.0.0.2"]

    def test_drops_blank_entries(self) -> None:
        assert parse_forwarded_for(" , 10.0.0.2,,") == ["10.0.0.2"]

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_header(self, value) -> None:
        assert parse_forwarded_for(value) == []


class TestResolveClientIp:
    def test_zero_hops_ignores_forwarded_for(self) -> None:
        assert resolve_client_ip("10.0.0.1", "6.6.6.6", trusted_hops=0) == "10.0.0.1"

    def test_one_hop_takes_right_most_forwarded_address(self) -> None:
        # A client-supplied left-most entry must not win
        ip = resolve_client_ip("10.0.0.1", "6.6.6.6, 203.0.113.7", trusted_hops=1)
        assert ip == "203.0.113.7"

    def test_two_hops_skip_second_proxy(self) -> None:
        ip = resolve_client_ip("10.0.0.1", "6.6.6.6, 203.0.113.7, 10.0.0.2", trusted_hops=2)
        assert ip == "203.0.113.7"

    def test_chain_shorter_than_hops_uses_left_most(self) -> None:
        assert resolve_client_ip("10.0.0.1", "203.0.113.7", trusted_hops=5) == "203.0.113.7"

    def test_no_header_falls_back_to_peer(self) -> None:
        assert resolve_client_ip("10.0.0.1", None, trusted_hops=1) == "10.0.0.1"

    def test_unknown_peer(self) -> None:
        assert resolve_client_ip(None, None, trusted_hops=0) == "unknown"
        assert resolve_client_ip(None, None, trusted_hops=1) == "unknown"

    def test_negative_hops_rejected(self) -> None:
        with pytest.raises(ValueError):
            resolve_client_ip("10.0.0.1", None, trusted_hops=-1)


def test_client_ip_from_request_uses_configured_hops(make_request, monkeypatch) -> None:
    from ratelimit_api.core import client_ip as client_ip_module

    request = make_request(ip="10.0.0.1", headers={"X-Forwarded-For": "203.0.113.7"})

    monkeypatch.setattr(client_ip_module.settings.app, "trust_proxy_hops", 1)
    assert client_ip_from_request(request) == "203.0.113.7"

    monkeypatch.setattr(client_ip_module.settings.app, "trust_proxy_hops", 0)
    assert client_ip_from_request(request) == "10.0.0.1"


def test_explicit_hops_override_settings(make_request, monkeypatch) -> None:
    from ratelimit_api.core import client_ip as client_ip_module

    monkeypatch.setattr(client_ip_module.settings.app, "trust_proxy_hops", 1)
    request = make_request(ip="10.0.0.1", headers={"X-Forwarded-For": "203.0.113.7"})

    assert client_ip_from_request(request, trusted_hops=0) == "10.0.0.1"
