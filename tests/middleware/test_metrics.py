"""Tests for Prometheus metrics middleware.

prometheus-client keeps one global registry and counters only go up, so
every assertion reads the value before the action and checks the delta.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from starlette.requests import Request

from app.middleware.metrics import UNMATCHED, route_template
from tests.conftest import learner_headers


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 1


def test_endpoint_label_is_route_template(client: TestClient) -> None:
    labels = {
        "method": "GET",
        "endpoint": "/v1/lms/paths/{path_id}/progress",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.get("/v1/lms/paths/p-123/progress", headers=learner_headers())
    client.get("/v1/lms/paths/p-456/progress", headers=learner_headers())
    after = _get_sample("http_requests_total", labels)
    assert after - before == 2
    assert (
        REGISTRY.get_sample_value(
            "http_requests_total",
            {"method": "GET", "endpoint": "/v1/lms/paths/p-123/progress", "status_code": "404"},
        )
        is None
    )


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/route/1")
    client.get("/no/such/route/2")
    assert _get_sample("http_requests_total", labels) - before == 2


def test_nested_router_label_is_full_template(client: TestClient) -> None:
    labels = {
        "method": "POST",
        "endpoint": "/v1/lms/admin/paths/{path_id}/publish",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.post(
        "/v1/lms/admin/paths/missing/publish",
        json={"course_ids": ["c1"]},
        headers=learner_headers(),
    )
    assert _get_sample("http_requests_total", labels) - before == 1


def test_route_template_without_matched_route() -> None:
    request = Request({"type": "http", "method": "GET", "path": "/x", "headers": []})
    assert route_template(request) == UNMATCHED


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "lms_progress_updates_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before


def test_progress_metrics_count_auto_enrollment(client: TestClient) -> None:
    before_auto = _get_sample("lms_progress_updates_total", {"result": "auto_enrolled"})
    before_applied = _get_sample("lms_progress_updates_total", {"result": "applied"})
    body = {"course_id": "c1", "lesson_id": "l1", "percent_complete": 10}
    client.post("/v1/lms/progress", json=body, headers=learner_headers())
    client.post("/v1/lms/progress", json=body, headers=learner_headers())
    assert _get_sample("lms_progress_updates_total", {"result": "auto_enrolled"}) - before_auto == 1
    assert _get_sample("lms_progress_updates_total", {"result": "applied"}) - before_applied == 1
