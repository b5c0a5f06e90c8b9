"""Tests for health check endpoints."""

from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import reset_container

from tests.conftest import make_settings


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        """Health endpoint should return 200 with status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data == {"status": "healthy", "version": "0.1.0"}

    def test_readiness_check(self, client):
        response = client.get("/api/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "auth": "configured", "billing": "configured"}

    def test_readiness_reports_missing_configuration(self):
        reset_container(make_settings(session_secret="", stripe_webhook_secret=""))
        client = TestClient(create_app())

        data = client.get("/api/ready").json()

        assert data["status"] == "degraded"
        assert data["auth"] == "missing configuration"
        assert data["billing"] == "missing configuration"

    def test_readiness_with_billing_disabled(self):
        reset_container(make_settings(enable_billing=False))
        client = TestClient(create_app())

        assert client.get("/api/ready").json()["billing"] == "disabled"
