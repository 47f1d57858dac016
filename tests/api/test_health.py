from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import create_app
from app.services.container import LmsServices


class _DownDatabase:
    async def ping(self) -> None:
        raise ConnectionError("connection refused")

    async def dispose(self) -> None:
        return None


class _FlakyRedis:
    async def ping(self) -> bool:
        raise TimeoutError("redis timeout")


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # in-memory services: neither backing store is configured
    assert data["checks"] == {"database": "not_configured", "redis": "not_configured"}


def test_ready_returns_200(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_database_outage_fails_readiness(services: LmsServices) -> None:
    services.database = _DownDatabase()  # type: ignore[assignment]
    client = TestClient(create_app(services))

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "degraded"
    assert health.json()["checks"]["database"] == "down"
    assert client.get("/ready").status_code == 503


def test_redis_outage_only_degrades_health(services: LmsServices) -> None:
    services.redis = _FlakyRedis()
    client = TestClient(create_app(services))

    health = client.get("/health")
    assert health.json()["checks"]["redis"] == "degraded"
    assert health.json()["status"] == "degraded"
    assert client.get("/ready").status_code == 200
