"""Tests for liveness and readiness endpoints."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from liveboard.core.errors import UpstreamUnavailableError


def test_liveness(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_reports_backends(client: TestClient):
    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "store": "memory",
        "events": "local",
        "open_streams": 0,
    }


def test_readiness_fails_when_store_is_down(client: TestClient):
    store = client.app.state.container.store
    store.ping = AsyncMock(side_effect=UpstreamUnavailableError(code="store_unavailable", message="down"))

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"
