"""Health probe, metrics endpoint and root."""

from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from app.api.dependencies import get_db
from app.main import app


def test_health_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"
    assert body["service"] == "mentorship-api"
    assert body["environment"] == "test"
    assert body["timestamp"].endswith("Z")


def test_health_degraded_when_database_is_down(client):
    broken = MagicMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))

    def override():
        yield broken

    app.dependency_overrides[get_db] = override
    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["status"] == "degraded"
    assert resp.json()["database"] == "unavailable"


def test_metrics_exposes_prometheus_text(client, mentor):
    client.get(f"/api/v1/mentors/{mentor.id}/availability/weekly")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "mentorship_service_operations_total" in resp.text


def test_root(client):
    assert client.get("/").json()["docs"] == "/docs"


def test_unknown_route_uses_problem_json(client):
    resp = client.get("/api/v1/nowhere")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] == 404
    assert body["title"] == "Not Found"
