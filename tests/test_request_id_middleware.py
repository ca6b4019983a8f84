from __future__ import annotations

import logging

from fastapi.testclient import TestClient


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_request_id_on_rate_limited_response(client: TestClient):
    for _ in range(10):
        client.get("/health")

    resp = client.get("/health", headers={"X-Request-ID": "denied-1"})

    assert resp.status_code == 429
    assert resp.headers.get("X-Request-ID") == "denied-1"


def test_completion_log_carries_quota(client: TestClient, caplog):
    with caplog.at_level(logging.INFO, logger="ratelimit_api.core.middleware"):
        client.get("/health", headers={"X-Request-ID": "quota-1"})

    records = [r for r in caplog.records if r.getMessage() == "request.completed"]
    assert len(records) == 1
    record = records[0]
    assert record.status_code == 200
    assert record.path == "/health"
    assert record.rate_limit_policy == "general"
    assert record.rate_limit_remaining == 9
