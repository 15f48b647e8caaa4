"""
Tests for health and utility endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.unit
class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient) -> None:
        """Test basic health check endpoint returns 200."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "issuepulse-api"}

    async def test_root_endpoint(self, client: AsyncClient) -> None:
        """Test root endpoint returns API info."""
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "IssuePulse"


@pytest.mark.unit
class TestErrorHandling:
    async def test_unhandled_errors_return_generic_500(self, app, registry) -> None:
        from httpx import ASGITransport

        from api import deps

        class BrokenLedger:
            async def live_results(self, now=None):
                raise RuntimeError("cosmos exploded")

        app.dependency_overrides[deps.get_vote_ledger] = lambda: BrokenLedger()
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/v1/poll/results")

        assert response.status_code == 500
        assert response.json()["error_type"] == "InternalServerError"
        assert "cosmos" not in response.text
