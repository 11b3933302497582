"""Request and response models shared by the API routers."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from pokeshelf.models.collection import CardCondition, CollectionEntry
from pokeshelf.models.profile import Profile
from pokeshelf.models.sync import ReplayReport


class ProfileResponse(BaseModel):
    """A profile."""

    id: str
    name: str
    created_at: datetime
    avatar: str | None = None

    @classmethod
    def from_model(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            name=profile.name,
            created_at=profile.created_at,
            avatar=profile.avatar,
        )


class EntryResponse(BaseModel):
    """A collection entry."""

    id: str
    profile_id: str
    catalog_item_id: str
    quantity: int
    condition: CardCondition
    added_at: datetime
    updated_at: datetime
    notes: str | None = None
    pending: bool = Field(
        default=False,
        description="True while the entry only exists locally (temporary id)",
    )

    @classmethod
    def from_model(cls, entry: CollectionEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            profile_id=entry.profile_id,
            catalog_item_id=entry.catalog_item_id,
            quantity=entry.quantity,
            condition=entry.condition,
            added_at=entry.added_at,
            updated_at=entry.updated_at,
            notes=entry.notes,
            pending=entry.is_temporary,
        )


class ReplayResponse(BaseModel):
    """Outcome of a replay or full sync."""

    status: str
    applied: int = 0
    rejected: int = 0
    failed: int = 0
    skipped: int = 0
    fully_synced: bool = True

    @classmethod
    def from_report(cls, report: ReplayReport, status: str) -> "ReplayResponse":
        return cls(status=status, fully_synced=report.fully_synced, **report.summary())


class CatalogSearchResponse(BaseModel):
    """Catalog search results."""

    query: str
    cards: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0
