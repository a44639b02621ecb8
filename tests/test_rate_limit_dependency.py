"""Integration tests for the ``rate_limit`` route dependency."""

import logging

import pytest
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from app.adapters.rate_limit.base import RateLimitConfig
from app.adapters.rate_limit.registry import RateLimiterRegistry
from app.core.app_factory import create_app
from app.core.client_key import user_key_extractor
from app.core.config import settings
from app.core.rate_limit import rate_limit

CONFIG = RateLimitConfig(window_ms=60_000, max_requests=3)


@pytest.fixture
def app(registry: RateLimiterRegistry) -> FastAPI:
    app = create_app(registry=registry)

    @app.get("/limited", dependencies=[Depends(rate_limit("limited", CONFIG))])
    def limited() -> dict:
        return {"success": True}

    @app.post("/created", dependencies=[Depends(rate_limit("created", CONFIG))])
    def created() -> JSONResponse:
        return JSONResponse(
            {"created": True}, status_code=201, headers={"X-Custom-Header": "custom-value"}
        )

    @app.get("/own-limit-header", dependencies=[Depends(rate_limit("own", CONFIG))])
    def own_limit_header() -> JSONResponse:
        return JSONResponse({"ok": True}, headers={"X-RateLimit-Limit": "handler"})

    @app.get(
        "/per-user",
        dependencies=[Depends(rate_limit("per-user", CONFIG, user_key_extractor))],
    )
    def per_user() -> dict:
        return {"success": True}

    @app.get("/shared-a", dependencies=[Depends(rate_limit("shared", CONFIG))])
    def shared_a() -> dict:
        return {"route": "a"}

    @app.get("/shared-b", dependencies=[Depends(rate_limit("shared", CONFIG))])
    def shared_b() -> dict:
        return {"route": "b"}

    return app


def _ip(address: str) -> dict:
    return {"X-Forwarded-For": address}


def test_allowed_response_carries_headers(client: TestClient) -> None:
    response = client.get("/limited", headers=_ip("192.168.1.1"))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "2"
    assert response.headers["X-RateLimit-Reset"].isdigit()
    assert "Retry-After" not in response.headers


def test_remaining_decrements(client: TestClient) -> None:
    remaining = [
        client.get("/limited", headers=_ip("192.168.1.5")).headers["X-RateLimit-Remaining"]
        for _ in range(3)
    ]

    assert remaining == ["2", "1", "0"]


def test_returns_429_when_exceeded(client: TestClient) -> None:
    for _ in range(3):
        client.get("/limited", headers=_ip("192.168.1.3"))

    response = client.get("/limited", headers=_ip("192.168.1.3"))

    assert response.status_code == 429
    body = response.json()
    assert body["error"]["code"] == "rate_limit_exceeded"
    assert body["error"]["details"]["limiter"] == "limited"
    assert body["error"]["details"]["retry_after"] >= 1
    assert "request_id" in body["error"]
    assert int(response.headers["Retry-After"]) >= 1
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Limit"] == "3"


def test_other_clients_unaffected(client: TestClient) -> None:
    for _ in range(4):
        client.get("/limited", headers=_ip("192.168.1.10"))

    response = client.get("/limited", headers=_ip("192.168.1.11"))

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Remaining"] == "2"


def test_preserves_handler_status_and_headers(client: TestClient) -> None:
    response = client.post("/created", headers=_ip("192.168.1.7"))

    assert response.status_code == 201
    assert response.headers["X-Custom-Header"] == "custom-value"
    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "2"
    assert response.headers["X-RateLimit-Reset"].isdigit()


def test_handler_set_headers_win(client: TestClient) -> None:
    response = client.get("/own-limit-header", headers=_ip("192.168.1.8"))

    assert response.headers["X-RateLimit-Limit"] == "handler"
    assert response.headers["X-RateLimit-Remaining"] == "2"


def test_custom_key_extractor(client: TestClient) -> None:
    first = client.get("/per-user", headers={"Authorization": "Bearer user1"})
    second = client.get("/per-user", headers={"Authorization": "Bearer user2"})

    assert first.headers["X-RateLimit-Remaining"] == "2"
    assert second.headers["X-RateLimit-Remaining"] == "2"


def test_routes_sharing_a_name_share_quota(client: TestClient) -> None:
    client.get("/shared-a", headers=_ip("10.1.1.1"))
    client.get("/shared-b", headers=_ip("10.1.1.1"))
    client.get("/shared-a", headers=_ip("10.1.1.1"))

    assert client.get("/shared-b", headers=_ip("10.1.1.1")).status_code == 429


def test_limiters_live_in_app_registry(
    client: TestClient, registry: RateLimiterRegistry
) -> None:
    client.get("/limited", headers=_ip("10.2.2.2"))

    assert "limited" in registry
    assert registry.get("limited").config == CONFIG


def test_disabled_rate_limit_skips_checks(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

    for _ in range(5):
        response = client.get("/limited", headers=_ip("192.168.1.20"))
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


def test_headers_can_be_turned_off(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_include_headers", False)

    for _ in range(3):
        allowed = client.get("/limited", headers=_ip("192.168.1.30"))
        assert "X-RateLimit-Limit" not in allowed.headers

    blocked = client.get("/limited", headers=_ip("192.168.1.30"))
    assert blocked.status_code == 429
    assert "Retry-After" not in blocked.headers


def test_allowed_is_logged_at_debug(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.DEBUG, logger="app.core.rate_limit")

    client.get("/limited", headers=_ip("198.51.100.50"))

    records = [r for r in caplog.records if r.getMessage() == "rate_limit.allowed"]
    assert len(records) == 1
    assert records[0].levelno == logging.DEBUG
    assert records[0].limiter == "limited"
    assert records[0].remaining == 2


def test_allowed_is_silent_at_info(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="app.core.rate_limit")

    client.get("/limited", headers=_ip("198.51.100.51"))

    assert not [r for r in caplog.records if r.getMessage() == "rate_limit.allowed"]


def test_exceeded_is_logged_with_hashed_key(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="app.core.rate_limit")

    for _ in range(4):
        client.get("/limited", headers=_ip("198.51.100.77"))

    records = [r for r in caplog.records if r.getMessage() == "rate_limit.exceeded"]
    assert len(records) == 1
    assert records[0].limiter == "limited"
    assert records[0].key_hash != "198.51.100.77"


def test_registry_cleared_on_shutdown(app: FastAPI, registry: RateLimiterRegistry) -> None:
    with TestClient(app) as client:
        client.get("/limited", headers=_ip("10.3.3.3"))
        assert len(registry) == 1

    assert len(registry) == 0


def test_rate_limits_endpoint_lists_limiters(client: TestClient) -> None:
    client.get("/limited", headers=_ip("10.4.4.4"))

    response = client.get("/v1/rate-limits", headers=_ip("10.4.4.4"))

    assert response.status_code == 200
    limiters = {item["name"]: item for item in response.json()["limiters"]}
    assert limiters["limited"] == {
        "name": "limited",
        "window_ms": 60_000,
        "max_requests": 3,
        "tracked_keys": 1,
    }
    assert limiters["rate-limits"]["max_requests"] == 100
    assert response.headers["X-RateLimit-Limit"] == "100"


def test_health_is_not_rate_limited(client: TestClient) -> None:
    for _ in range(5):
        response = client.get("/health")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers
