"""
Catalog API endpoints.

Proxies the Pokemon TCG API through the cached catalog client.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from pokeshelf.api.dependencies import get_catalog
from pokeshelf.api.schemas import CatalogSearchResponse
from pokeshelf.catalog.client import CatalogClient

router = APIRouter(prefix="/catalog", tags=["catalog"])


class FacetsResponse(BaseModel):
    """Filter values offered by the catalog."""

    types: list[str] = Field(default_factory=list)
    rarities: list[str] = Field(default_factory=list)
    sets: list[dict[str, Any]] = Field(default_factory=list)


@router.get("/search", response_model=CatalogSearchResponse)
async def search_cards(
    catalog: Annotated[CatalogClient, Depends(get_catalog)],
    q: Annotated[str, Query(min_length=1, max_length=100)],
) -> CatalogSearchResponse:
    """Search cards by name (cached for a day)."""
    cards = await catalog.search(q)
    return CatalogSearchResponse(query=q, cards=cards, count=len(cards))


@router.get("/cards/{item_id}")
async def get_card(
    item_id: str,
    catalog: Annotated[CatalogClient, Depends(get_catalog)],
) -> dict[str, Any]:
    """Get a single card (cached for a week)."""
    return await catalog.get_by_id(item_id)


@router.get("/facets", response_model=FacetsResponse)
async def get_facets(
    catalog: Annotated[CatalogClient, Depends(get_catalog)],
) -> FacetsResponse:
    """List types, rarities and sets. Not cached."""
    facets = await catalog.list_facets()
    return FacetsResponse(types=facets.types, rarities=facets.rarities, sets=facets.sets)
