"""Integration tests for the application entry points."""

from fastapi.testclient import TestClient

from saron.api.main import app


def test_health_check():
    """Test the health endpoint without running the lifespan."""
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_scheduler_status_when_not_started():
    response = TestClient(app).get("/scheduler/status")

    assert response.status_code == 200
    assert response.json() == {"running": False, "jobs": {}}


def test_v1_routes_mounted():
    paths = TestClient(app).get("/openapi.json").json()["paths"]

    assert "/api/v1/sales/sync" in paths
    assert "/api/v1/dapic/{store_id}/vendaspdv" in paths
