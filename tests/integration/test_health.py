"""Integration tests for health check endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        response = client.get("/health")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert data["service"] == "kinsa-checkout"
        assert data["timestamp"] is not None


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_returns_200_when_healthy(self, client: TestClient) -> None:
        response = client.get("/health/ready")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert {check["name"] for check in data["checks"]} == {"database", "razorpay"}

    def test_readiness_database_check_includes_latency(self, client: TestClient) -> None:
        response = client.get("/health/ready")

        db_check = next(c for c in response.json()["checks"] if c["name"] == "database")
        assert db_check["latency_ms"] is not None

    def test_readiness_returns_503_when_database_unhealthy(
        self, client: TestClient, mock_supabase_client: MagicMock
    ) -> None:
        mock_supabase_client.table.return_value.select.return_value.limit.return_value.execute.side_effect = (
            Exception("connection refused")
        )

        response = client.get("/health/ready")
        data = response.json()

        assert response.status_code == 503
        assert data["status"] == "unhealthy"
        db_check = next(c for c in data["checks"] if c["name"] == "database")
        assert db_check["healthy"] is False
        assert "connection refused" in db_check["error"]

    def test_readiness_returns_503_without_razorpay_keys(self, client: TestClient) -> None:
        settings = MagicMock(is_razorpay_configured=False)

        with patch("src.api.routes.health.get_settings", return_value=settings):
            response = client.get("/health/ready")

        assert response.status_code == 503
        razorpay_check = next(c for c in response.json()["checks"] if c["name"] == "razorpay")
        assert razorpay_check["error"] == "Razorpay credentials not configured"


class TestAuthenticatedHealthEndpoint:
    """Tests for /health/auth endpoint."""

    def test_requires_authorization(self, client: TestClient) -> None:
        response = client.get("/health/auth")

        assert response.status_code == 401

    def test_returns_user(self, auth_client: TestClient) -> None:
        response = auth_client.get("/health/auth")
        data = response.json()

        assert response.status_code == 200
        assert data["authenticated"] is True
        assert data["email"] == "buyer@example.com"
