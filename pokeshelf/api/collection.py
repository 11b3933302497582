"""
Collection API endpoints.

Every write goes through the sync engine and answers immediately: the
returned entry is either confirmed by the store or marked ``pending``
until the queued change replays.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from pokeshelf.api.dependencies import get_catalog, get_engine
from pokeshelf.api.schemas import EntryResponse
from pokeshelf.catalog.client import CatalogClient
from pokeshelf.models.catalog import get_market_price
from pokeshelf.models.collection import CardCondition
from pokeshelf.models.failure import FetchError
from pokeshelf.sync.engine import SyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles/{profile_id}/collection", tags=["collection"])


class EntryCreateRequest(BaseModel):
    """Request model for adding a card to a collection."""

    catalog_item_id: str = Field(..., min_length=1, examples=["base1-4"])
    quantity: int = Field(default=1, description="Number of copies, must be positive")
    condition: CardCondition = CardCondition.NEAR_MINT
    notes: str | None = None


class EntryUpdateRequest(BaseModel):
    """Request model for editing an entry. Omitted fields are unchanged."""

    quantity: int | None = None
    condition: CardCondition | None = None
    notes: str | None = Field(default=None, description="Empty string clears the note")


class CollectionResponse(BaseModel):
    """Response model for a profile's collection."""

    profile_id: str
    entries: list[EntryResponse] = Field(default_factory=list)
    total_cards: int = 0
    unique_cards: int = 0
    cards: dict[str, dict[str, Any]] | None = Field(
        default=None,
        description="Catalog data keyed by card id (only with include_cards)",
    )
    estimated_value: float | None = Field(
        default=None,
        description="Sum of market prices times quantity (only with include_cards)",
    )


@router.get("", response_model=CollectionResponse)
async def get_collection(
    profile_id: str,
    engine: Annotated[SyncEngine, Depends(get_engine)],
    catalog: Annotated[CatalogClient, Depends(get_catalog)],
    include_cards: Annotated[bool, Query()] = False,
) -> CollectionResponse:
    """
    Get a profile's collection.

    Pulled from the remote store when reachable, otherwise served from the
    cache. With ``include_cards`` the catalog data for every entry is
    attached; if the catalog is unreachable the entries are still returned.
    """
    entries = await engine.sync_collection_from_server(profile_id)
    response = CollectionResponse(
        profile_id=profile_id,
        entries=[EntryResponse.from_model(e) for e in entries],
        total_cards=sum(e.quantity for e in entries),
        unique_cards=len({e.catalog_item_id for e in entries}),
    )

    if include_cards and entries:
        try:
            items = await catalog.get_by_ids([e.catalog_item_id for e in entries])
        except FetchError as e:
            logger.warning("Catalog unavailable for collection %s: %s", profile_id, e)
            return response

        response.cards = {str(item["id"]): item for item in items}
        value = 0.0
        for entry in entries:
            item = response.cards.get(entry.catalog_item_id)
            price = get_market_price(item) if item else None
            if price is not None:
                value += price * entry.quantity
        response.estimated_value = round(value, 2)

    return response


@router.post("", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def add_entry(
    profile_id: str,
    request: EntryCreateRequest,
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> EntryResponse:
    """Add a card to the collection."""
    entry = await engine.add_entry(
        profile_id,
        request.catalog_item_id,
        quantity=request.quantity,
        condition=request.condition,
        notes=request.notes,
    )
    return EntryResponse.from_model(entry)


@router.patch("/{entry_id}", response_model=EntryResponse)
async def update_entry(
    profile_id: str,
    entry_id: str,
    request: EntryUpdateRequest,
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> EntryResponse:
    """Edit quantity, condition or notes of an entry."""
    entry = await engine.update_entry(
        profile_id,
        entry_id,
        quantity=request.quantity,
        condition=request.condition,
        notes=request.notes,
    )
    return EntryResponse.from_model(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    profile_id: str,
    entry_id: str,
    engine: Annotated[SyncEngine, Depends(get_engine)],
) -> None:
    """Remove an entry from the collection."""
    await engine.delete_entry(profile_id, entry_id)
