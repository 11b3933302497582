"""Tests for profile, sync and catalog API endpoints."""

import httpx
import respx
from httpx import AsyncClient

from pokeshelf.models.profile import Profile
from pokeshelf.sync.connectivity import Connectivity
from pokeshelf.sync.engine import SyncEngine

CATALOG_URL = "https://catalog.test/v2"


class TestProfiles:
    async def test_create_and_list(self, client: AsyncClient) -> None:
        response = await client.post("/profiles", json={"name": "Misty", "avatar": "starmie"})

        assert response.status_code == 201
        created = response.json()

        profiles = (await client.get("/profiles")).json()
        assert [p["id"] for p in profiles] == [created["id"]]
        assert profiles[0]["avatar"] == "starmie"

    async def test_blank_name_is_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/profiles", json={"name": ""})

        assert response.status_code == 422

    async def test_create_offline_is_503(
        self, client: AsyncClient, connectivity: Connectivity
    ) -> None:
        connectivity.mark_offline()

        response = await client.post("/profiles", json={"name": "Brock"})

        assert response.status_code == 503
        assert response.json()["kind"] == "offline"

    async def test_list_offline_uses_cache(
        self, client: AsyncClient, connectivity: Connectivity, profile: Profile
    ) -> None:
        await client.get("/profiles")
        connectivity.mark_offline()

        response = await client.get("/profiles")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Ash"]


class TestSync:
    async def test_status(self, client: AsyncClient, connectivity: Connectivity) -> None:
        connectivity.mark_offline()

        data = (await client.get("/sync/status")).json()

        assert data["online"] is False
        assert data["pending_operations"] == 0
        assert data["last_sync"] is None

    async def test_replay_pending(
        self,
        client: AsyncClient,
        sync_engine: SyncEngine,
        connectivity: Connectivity,
        profile: Profile,
    ) -> None:
        """Queued changes are pushed on request."""
        connectivity.mark_offline()
        await sync_engine.add_entry(profile.id, "base1-4")
        connectivity.mark_online()

        data = (await client.post("/sync/pending")).json()

        assert data["applied"] == 1
        assert data["fully_synced"] is True
        assert data["status"] == "idle"
        assert (await client.get("/sync/status")).json()["pending_operations"] == 0

    async def test_full_sync(
        self, client: AsyncClient, sync_engine: SyncEngine, profile: Profile
    ) -> None:
        response = await client.post(f"/profiles/{profile.id}/sync")

        assert response.status_code == 200
        assert response.json()["status"] == "idle"
        assert sync_engine.cache.get_last_sync_time() is not None

    async def test_full_sync_with_store_down(
        self, client: AsyncClient, store, profile: Profile
    ) -> None:
        store.down = True

        response = await client.post(f"/profiles/{profile.id}/sync")

        assert response.status_code == 503
        assert response.json()["kind"] == "store_unavailable"


class TestCatalog:
    @respx.mock
    async def test_search(self, client: AsyncClient, sample_card: dict) -> None:
        respx.get(f"{CATALOG_URL}/cards").mock(
            return_value=httpx.Response(200, json={"data": [sample_card]})
        )

        data = (await client.get("/catalog/search", params={"q": "charizard"})).json()

        assert data["count"] == 1
        assert data["cards"][0]["id"] == "base1-4"

    async def test_search_requires_query(self, client: AsyncClient) -> None:
        response = await client.get("/catalog/search", params={"q": ""})

        assert response.status_code == 422

    @respx.mock
    async def test_catalog_failure_is_502(self, client: AsyncClient) -> None:
        respx.get(f"{CATALOG_URL}/cards/base1-4").mock(return_value=httpx.Response(500))

        response = await client.get("/catalog/cards/base1-4")

        assert response.status_code == 502
        assert response.json()["kind"] == "external_api_error"

    async def test_cached_card(self, client: AsyncClient, catalog, sample_card: dict) -> None:
        catalog.cache.set_cached_item(sample_card)

        response = await client.get("/catalog/cards/base1-4")

        assert response.json()["name"] == "Charizard"

    @respx.mock
    async def test_facets(self, client: AsyncClient) -> None:
        respx.get(f"{CATALOG_URL}/types").mock(
            return_value=httpx.Response(200, json={"data": ["Fire"]})
        )
        respx.get(f"{CATALOG_URL}/rarities").mock(
            return_value=httpx.Response(200, json={"data": ["Rare Holo"]})
        )
        respx.get(f"{CATALOG_URL}/sets").mock(
            return_value=httpx.Response(200, json={"data": []})
        )

        data = (await client.get("/catalog/facets")).json()

        assert data == {"types": ["Fire"], "rarities": ["Rare Holo"], "sets": []}
