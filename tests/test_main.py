from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app


@pytest.fixture
def no_backing_stores(monkeypatch: pytest.MonkeyPatch) -> None:
    # the lifespan reads the module-level SETTINGS when it builds services
    monkeypatch.setattr(
        "app.main.SETTINGS",
        Settings(
            app_env="test",
            log_level="info",
            log_json=False,
            port=8000,
            database_url=None,
            redis_url=None,
        ),
    )


def test_lifespan_builds_in_memory_services(no_backing_stores: None) -> None:
    app = create_app()
    assert app.state.lms is None

    with TestClient(app) as client:
        assert app.state.lms is not None
        assert app.state.lms.database is None
        resp = client.get("/health")
        assert resp.json() == {
            "status": "ok",
            "checks": {"database": "not_configured", "redis": "not_configured"},
        }


def test_lifespan_keeps_injected_services(services) -> None:
    app = create_app(services)
    with TestClient(app) as client:
        assert client.get("/ready").status_code == 200
    assert app.state.lms is services


def test_openapi_lists_lms_routes(client: TestClient) -> None:
    paths = client.get("/openapi.json").json()["paths"]
    assert "/v1/lms/progress" in paths
    assert "/v1/lms/admin/paths/{path_id}/publish" in paths
    assert "/v1/lms/certificates/{certificate_id}" in paths
