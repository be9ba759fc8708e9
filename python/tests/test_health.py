"""Tests for the health endpoint.

The health endpoint is a liveness check that:
- Does not touch the store or the catalog
- Reports the number of live interactive sessions
- Always returns 200 if the process is running
"""

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for GET /health"""

    def test_health_returns_200(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_correct_envelope(self, client: TestClient):
        response = client.get("/health")

        assert response.json() == {"data": {"status": "ok", "active_sessions": 0}}

    def test_health_content_type_is_json(self, client: TestClient):
        response = client.get("/health")
        assert response.headers["content-type"] == "application/json"
