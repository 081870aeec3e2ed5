from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from demo_service.db import base as db_base


def test_health_endpoint_reports_up(client: TestClient):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "UP"
    assert data["service"] == "demo-service"
    assert data["timestamp"]
    assert data["checks"] == {"config": True, "db": True}


def test_health_reports_failed_db_probe(app: FastAPI, client: TestClient):
    class _BrokenSession:
        async def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("db down"))

    async def _dep():
        yield _BrokenSession()

    app.dependency_overrides[db_base.get_session] = _dep
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "UP"
    assert data["checks"]["db"] is False


def test_info_counts_active_users(client: TestClient):
    client.post(
        "/api/users",
        json={"username": "ann", "email": "ann@example.com", "firstName": "Ann", "lastName": "Lee"},
    )
    client.post(
        "/api/users",
        json={
            "username": "bob",
            "email": "bob@example.com",
            "firstName": "Bob",
            "lastName": "Ray",
            "isActive": False,
        },
    )

    res = client.get("/api/v1/info")
    assert res.status_code == 200
    data = res.json()
    assert data["application"] == "demo-service"
    assert data["version"] == "1.0.0"
    assert data["status"] == "running"
    assert data["totalUsers"] == 1
    assert data["timestamp"]


def test_echo_returns_payload(client: TestClient):
    payload = {"message": "hi", "nested": {"n": [1, 2, 3]}}
    res = client.post("/api/v1/echo", json=payload)
    assert res.status_code == 200
    data = res.json()
    assert data["received"] == payload
    assert data["service"] == "demo-service"


def test_echo_rejects_non_object_body(client: TestClient):
    res = client.post("/api/v1/echo", json=[1, 2])
    assert res.status_code == 422
