"""Tests for health check endpoints."""

from httpx import AsyncClient


class TestHealthEndpoint:
    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        """Liveness check returns healthy without touching the store."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": None, "treasury": None}


class TestReadyEndpoint:
    async def test_ready_before_bootstrap(self, client: AsyncClient) -> None:
        """An empty store is reachable but has no treasury yet."""
        response = await client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["database"] == "connected"
        assert data["treasury"] == "missing"

    async def test_ready_after_bootstrap(self, client: AsyncClient, seeded) -> None:
        """Once the treasury exists readiness reports it."""
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["treasury"] == "present"
