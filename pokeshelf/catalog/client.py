"""
Pokemon TCG API client.

Read-only access to the card catalog with transparent caching:
search results are cached for a day, individual cards for a week
(see LocalCacheStore). Nothing here retries; a failed request raises
FetchError and the caller decides what to do.

API docs: https://docs.pokemontcg.io/
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from pokeshelf.config import settings
from pokeshelf.models.catalog import CatalogItem
from pokeshelf.models.failure import FetchError
from pokeshelf.storage.local_cache import LocalCacheStore, normalize_query

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_IDS_PER_REQUEST = 25


def build_search_query(term: str) -> str:
    """
    Build the catalog query expression for a name search.

    Single words use a bare wildcard match; multi-word terms are quoted so
    the phrase matches as a whole, with wildcards on both ends.

    Example:
        "pikachu" -> name:*pikachu*
        "pikachu ex" -> name:"*pikachu ex*"
    """
    term = " ".join(term.split())
    if " " in term:
        return f'name:"*{term}*"'
    return f"name:*{term}*"


def build_ids_query(item_ids: list[str]) -> str:
    """Build an OR-joined query expression matching any of the given ids."""
    return " OR ".join(f'id:"{item_id}"' for item_id in item_ids)


def _chunked(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


@dataclass
class CatalogFacets:
    """Filter values offered by the catalog."""

    types: list[str] = field(default_factory=list)
    rarities: list[str] = field(default_factory=list)
    sets: list[dict[str, Any]] = field(default_factory=list)


class CatalogClient:
    """
    Cached lookups against the card catalog.

    Args:
        cache: Local cache holding search results and cards
        base_url: API root, e.g. https://api.pokemontcg.io/v2
        api_key: Optional key sent as X-Api-Key
        http_client: Optional client for connection reuse (not closed by us)
        page_size: Max results per search
        max_ids_per_request: Max ids per batched lookup request
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        base_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_ids_per_request: int = DEFAULT_MAX_IDS_PER_REQUEST,
    ) -> None:
        self.cache = cache
        self.base_url = (base_url or settings.catalog_base_url).rstrip("/")
        self.page_size = page_size
        self.max_ids_per_request = max(1, max_ids_per_request)

        key = settings.catalog_api_key if api_key is None else api_key
        self._headers = {"Content-Type": "application/json"}
        if key:
            self._headers["X-Api-Key"] = key

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.catalog_timeout_seconds
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a catalog endpoint and return the ``data`` member of the body.

        Raises:
            FetchError: On transport errors, non-2xx responses or bad JSON
        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url, params=params, headers=self._headers)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Catalog request %s failed: HTTP %d", url, e.response.status_code)
            raise FetchError(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
                http_status=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.warning("Catalog request %s failed: %s", url, e)
            raise FetchError(str(e) or type(e).__name__) from e
        except ValueError as e:
            raise FetchError(f"Malformed response from {path}: {e}") from e

        if not isinstance(body, dict) or "data" not in body:
            raise FetchError(f"Malformed response from {path}: missing data")
        return body["data"]

    async def search(self, query: str) -> list[CatalogItem]:
        """
        Search cards by name.

        Cached results are returned without touching the network. Fresh
        results are cached under the query and every card in them is
        cached individually as well.

        Raises:
            FetchError: If the catalog request fails
        """
        normalized = normalize_query(query)
        if not normalized:
            return []

        cached = self.cache.get_cached_search(normalized)
        if cached is not None:
            logger.debug("Returning cached search results for %r", normalized)
            return cached

        expression = build_search_query(normalized)
        logger.info("Searching catalog: %s", expression)
        results: list[CatalogItem] = await self._get(
            "/cards", params={"q": expression, "pageSize": self.page_size}
        )
        logger.info("Found %d cards for query %r", len(results), normalized)

        self.cache.set_cached_search(normalized, results)
        for item in results:
            self.cache.set_cached_item(item)

        return results

    async def get_by_id(self, item_id: str) -> CatalogItem:
        """
        Get a single card.

        Raises:
            FetchError: If the card is not cached and the request fails
        """
        cached = self.cache.get_cached_item(item_id)
        if cached is not None:
            return cached

        item: CatalogItem = await self._get(f"/cards/{item_id}")
        self.cache.set_cached_item(item)
        return item

    async def get_by_ids(self, item_ids: list[str]) -> list[CatalogItem]:
        """
        Get several cards, fetching only the ones not already cached.

        Uncached ids are requested in batches of at most
        ``max_ids_per_request`` to keep query strings bounded. Returns
        cached cards first, then fetched ones. Ids the catalog does not
        know are silently absent from the result.

        Raises:
            FetchError: If any batch request fails
        """
        unique_ids = list(dict.fromkeys(item_ids))

        found: list[CatalogItem] = []
        missing: list[str] = []
        for item_id in unique_ids:
            cached = self.cache.get_cached_item(item_id)
            if cached is not None:
                found.append(cached)
            else:
                missing.append(item_id)

        if not missing:
            return found

        for batch in _chunked(missing, self.max_ids_per_request):
            fetched: list[CatalogItem] = await self._get(
                "/cards", params={"q": build_ids_query(batch)}
            )
            for item in fetched:
                self.cache.set_cached_item(item)
            found.extend(fetched)

        return found

    async def get_types(self) -> list[str]:
        return list(await self._get("/types"))

    async def get_rarities(self) -> list[str]:
        return list(await self._get("/rarities"))

    async def get_sets(self) -> list[dict[str, Any]]:
        return list(await self._get("/sets"))

    async def list_facets(self) -> CatalogFacets:
        """Fetch types, rarities and sets concurrently. Never cached."""
        types, rarities, sets = await asyncio.gather(
            self.get_types(), self.get_rarities(), self.get_sets()
        )
        return CatalogFacets(types=types, rarities=rarities, sets=sets)
