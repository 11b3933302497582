"""Tests for health check endpoints."""

from httpx import AsyncClient

from pokeshelf.models.profile import Profile
from pokeshelf.sync.connectivity import Connectivity
from pokeshelf.sync.engine import SyncEngine


class TestHealthEndpoint:
    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        """Liveness probe returns healthy."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

    async def test_health_no_db_check(self, client: AsyncClient) -> None:
        """Health endpoint does not include database status."""
        response = await client.get("/health")

        data = response.json()
        assert data.get("database") is None


class TestReadyEndpoint:
    async def test_ready_returns_ready(self, client: AsyncClient) -> None:
        """Readiness probe returns ready when the store is reachable."""
        response = await client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["database"] == "connected"
        assert data["sync_status"] == "idle"
        assert data["pending_operations"] == 0

    async def test_ready_reports_sync_queue(
        self,
        client: AsyncClient,
        sync_engine: SyncEngine,
        connectivity: Connectivity,
        profile: Profile,
    ) -> None:
        connectivity.mark_offline()
        await sync_engine.add_entry(profile.id, "base1-4")

        data = (await client.get("/ready")).json()

        assert data["pending_operations"] == 1

    async def test_ready_returns_503_on_store_failure(self, client: AsyncClient, store) -> None:
        """Readiness probe returns 503 when the store is unavailable."""
        store.down = True

        response = await client.get("/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not ready"
        assert data["database"] == "disconnected"
