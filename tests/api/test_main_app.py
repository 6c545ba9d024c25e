"""Smoke tests for the assembled application (lifespan not started)."""

import pytest
from fastapi.testclient import TestClient

from streamcast.main import app, build_granian_kwargs


@pytest.fixture
def client() -> TestClient:
    # Not used as a context manager, so the lifespan (services, logfire) does not run.
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_root(client):
    assert client.get("/").json()["results"] == "OK"


def test_stream_routes_require_auth(client):
    response = client.post("/stop-stream/S1")

    assert response.status_code == 401
    assert response.json()["errcode"] == "E_AUTH_REQUIRED"


def test_routes_registered():
    paths = {route.path for route in app.routes}

    assert {
        "/start-stream",
        "/stop-stream/{stream_id}",
        "/stream/{stream_id}/status",
        "/cleanup",
        "/auth/youtube",
        "/auth/callback",
        "/auth/status",
    } <= paths


def test_granian_kwargs():
    kwargs = build_granian_kwargs()

    assert kwargs["interface"] == "asgi"
    assert isinstance(kwargs["port"], int)
