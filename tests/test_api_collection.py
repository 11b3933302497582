"""Tests for collection API endpoints."""

import httpx
import pytest
import respx
from httpx import AsyncClient

from pokeshelf.models.profile import Profile
from pokeshelf.sync.connectivity import Connectivity

CATALOG_URL = "https://catalog.test/v2"


class TestGetCollection:
    async def test_get_empty_collection(self, client: AsyncClient, profile: Profile) -> None:
        """Returns an empty collection for a new profile."""
        response = await client.get(f"/profiles/{profile.id}/collection")

        assert response.status_code == 200
        data = response.json()
        assert data["profile_id"] == profile.id
        assert data["entries"] == []
        assert data["total_cards"] == 0
        assert data["cards"] is None

    async def test_totals(self, client: AsyncClient, profile: Profile) -> None:
        url = f"/profiles/{profile.id}/collection"
        await client.post(url, json={"catalog_item_id": "base1-4", "quantity": 2})
        await client.post(url, json={"catalog_item_id": "base1-4", "condition": "poor"})
        await client.post(url, json={"catalog_item_id": "base1-58"})

        data = (await client.get(url)).json()

        assert len(data["entries"]) == 3
        assert data["total_cards"] == 4
        assert data["unique_cards"] == 2

    async def test_include_cards_attaches_catalog_data(
        self, client: AsyncClient, profile: Profile, catalog, sample_card: dict
    ) -> None:
        """Catalog data and an estimated value come from the cached cards."""
        catalog.cache.set_cached_item(sample_card)
        url = f"/profiles/{profile.id}/collection"
        await client.post(url, json={"catalog_item_id": "base1-4", "quantity": 2})

        data = (await client.get(url, params={"include_cards": "true"})).json()

        assert data["cards"]["base1-4"]["name"] == "Charizard"
        assert data["estimated_value"] == 701.0

    @respx.mock
    async def test_catalog_outage_still_returns_entries(
        self, client: AsyncClient, profile: Profile
    ) -> None:
        respx.get(f"{CATALOG_URL}/cards").mock(return_value=httpx.Response(503))
        url = f"/profiles/{profile.id}/collection"
        await client.post(url, json={"catalog_item_id": "base1-4"})

        response = await client.get(url, params={"include_cards": "true"})

        assert response.status_code == 200
        assert len(response.json()["entries"]) == 1
        assert response.json()["cards"] is None

    async def test_offline_without_cache_is_503(
        self, client: AsyncClient, connectivity: Connectivity, profile: Profile
    ) -> None:
        connectivity.mark_offline()

        response = await client.get(f"/profiles/{profile.id}/collection")

        assert response.status_code == 503
        assert response.json()["kind"] == "no_cached_data"


class TestAddEntry:
    async def test_add_entry(self, client: AsyncClient, profile: Profile) -> None:
        response = await client.post(
            f"/profiles/{profile.id}/collection",
            json={"catalog_item_id": "base1-4", "quantity": 1, "condition": "near-mint"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["catalog_item_id"] == "base1-4"
        assert data["condition"] == "near-mint"
        assert data["pending"] is False

    async def test_offline_add_is_pending(
        self, client: AsyncClient, connectivity: Connectivity, profile: Profile
    ) -> None:
        """Offline writes succeed and are flagged as pending."""
        connectivity.mark_offline()

        response = await client.post(
            f"/profiles/{profile.id}/collection", json={"catalog_item_id": "base1-4"}
        )

        assert response.status_code == 201
        assert response.json()["pending"] is True
        assert response.json()["id"].startswith("temp-")

    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_invalid_quantity(
        self, client: AsyncClient, profile: Profile, quantity: int
    ) -> None:
        response = await client.post(
            f"/profiles/{profile.id}/collection",
            json={"catalog_item_id": "base1-4", "quantity": quantity},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_input"

    async def test_invalid_condition(self, client: AsyncClient, profile: Profile) -> None:
        response = await client.post(
            f"/profiles/{profile.id}/collection",
            json={"catalog_item_id": "base1-4", "condition": "shiny"},
        )

        assert response.status_code == 422

    async def test_unknown_profile(self, client: AsyncClient) -> None:
        response = await client.post(
            "/profiles/00000000-0000-0000-0000-000000000000/collection",
            json={"catalog_item_id": "base1-4"},
        )

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"


class TestUpdateAndDelete:
    async def test_update_entry(self, client: AsyncClient, profile: Profile) -> None:
        url = f"/profiles/{profile.id}/collection"
        created = (await client.post(url, json={"catalog_item_id": "base1-4"})).json()

        response = await client.patch(
            f"{url}/{created['id']}", json={"quantity": 3, "notes": "sleeved"}
        )

        assert response.status_code == 200
        assert response.json()["quantity"] == 3
        assert response.json()["notes"] == "sleeved"

    async def test_update_without_changes(self, client: AsyncClient, profile: Profile) -> None:
        url = f"/profiles/{profile.id}/collection"
        created = (await client.post(url, json={"catalog_item_id": "base1-4"})).json()

        response = await client.patch(f"{url}/{created['id']}", json={})

        assert response.status_code == 400

    async def test_update_unknown_entry(self, client: AsyncClient, profile: Profile) -> None:
        response = await client.patch(
            f"/profiles/{profile.id}/collection/temp-missing", json={"quantity": 2}
        )

        assert response.status_code == 404

    async def test_delete_entry(self, client: AsyncClient, profile: Profile) -> None:
        url = f"/profiles/{profile.id}/collection"
        created = (await client.post(url, json={"catalog_item_id": "base1-4"})).json()

        response = await client.delete(f"{url}/{created['id']}")

        assert response.status_code == 204
        assert (await client.get(url)).json()["entries"] == []
