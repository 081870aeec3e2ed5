from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient


def test_each_request_increments_total_and_route_key(app: FastAPI, client: TestClient):
    client.get("/api/v1/health")
    client.get("/api/v1/health")
    client.post("/api/v1/echo", json={"a": 1})

    metrics = app.state.request_metrics
    assert metrics.get_request_count() == 3
    assert metrics.get_all_endpoint_counts() == {
        "GET /api/v1/health": 2,
        "POST /api/v1/echo": 1,
    }


def test_path_parameters_are_bucketed_by_route_template(app: FastAPI, client: TestClient):
    client.get("/api/users/1")
    client.get("/api/users/2")

    counts = app.state.request_metrics.get_all_endpoint_counts()
    assert counts == {"GET /api/users/{user_id}": 2}


def test_unmatched_route_counts_only_toward_total(app: FastAPI, client: TestClient):
    res = client.get("/no/such/path")
    assert res.status_code == 404

    metrics = app.state.request_metrics
    assert metrics.get_request_count() == 1
    assert metrics.get_all_endpoint_counts() == {}


def test_request_id_is_echoed_or_generated(client: TestClient):
    res = client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})
    assert res.headers["X-Request-ID"] == "req-123"

    res = client.get("/api/v1/health")
    assert res.headers["X-Request-ID"]
    assert res.headers["X-Request-ID"] != "req-123"


def test_apps_do_not_share_counters(app: FastAPI, client: TestClient):
    from demo_service.main import create_app

    client.get("/api/v1/health")
    other = create_app()
    assert other.state.request_metrics.get_request_count() == 0
    assert app.state.request_metrics.get_request_count() == 1


def test_unknown_method_on_known_path_adds_no_endpoint_key(app: FastAPI, client: TestClient):
    for i in range(5):
        res = client.request(f"X{i}", "/api/v1/info")
        assert res.status_code == 405
    res = client.delete("/api/v1/health")
    assert res.status_code == 405

    metrics = app.state.request_metrics
    assert metrics.get_request_count() == 6
    assert metrics.get_all_endpoint_counts() == {}
