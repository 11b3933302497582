"""
Collection entry models.

A CollectionEntry is one profile's ownership record for a catalog card.
The same catalog card may appear in several entries (distinct physical
copies in different conditions), so entries are keyed by their own id,
never by (profile, card).

Entries created while the remote store is unreachable carry a temporary
id (``temp-`` prefix) until a replay confirms them.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pokeshelf.models.failure import invalid_input

TEMP_ID_PREFIX = "temp-"


class CardCondition(str, Enum):
    """Physical condition grades, best first."""

    MINT = "mint"
    NEAR_MINT = "near-mint"
    EXCELLENT = "excellent"
    GOOD = "good"
    PLAYED = "played"
    POOR = "poor"

    @property
    def rank(self) -> int:
        """Position in the grading scale; 0 is best."""
        return CARD_CONDITIONS.index(self)

    @property
    def label(self) -> str:
        return format_condition(self.value)


CARD_CONDITIONS: tuple[CardCondition, ...] = tuple(CardCondition)


def format_condition(condition: str) -> str:
    """Format a condition value for display ("near-mint" -> "Near Mint")."""
    return " ".join(word.capitalize() for word in condition.split("-"))


def parse_condition(value: str | CardCondition) -> CardCondition:
    """
    Parse a condition value.

    Raises:
        KnownError: If the value is not one of the six grades
    """
    if isinstance(value, CardCondition):
        return value
    try:
        return CardCondition(value)
    except ValueError:
        allowed = ", ".join(c.value for c in CARD_CONDITIONS)
        raise invalid_input(
            f"Unknown card condition '{value}'. Expected one of: {allowed}",
            condition=value,
        ) from None


def validate_quantity(quantity: int) -> int:
    """
    Check the quantity invariant (strictly positive integer).

    Raises:
        KnownError: If quantity is not a positive integer
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise invalid_input("Quantity must be a positive integer", quantity=quantity)
    return quantity


def new_temp_id() -> str:
    """Generate a locally unique temporary entry id."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(entry_id: str) -> bool:
    """True if the id was generated locally and never confirmed by the store."""
    return entry_id.startswith(TEMP_ID_PREFIX)


@dataclass(frozen=True, slots=True)
class CollectionEntry:
    """
    One owned card (or stack of identical copies) in a profile's collection.

    Attributes:
        id: Entry id; server UUID, or a temporary id until confirmed
        profile_id: Owning profile (immutable)
        catalog_item_id: Catalog card id, e.g. "base1-4" (immutable)
        quantity: Number of copies, always > 0
        condition: Physical condition grade
        added_at: Creation timestamp
        updated_at: Last modification timestamp
        notes: Optional free text
    """

    id: str
    profile_id: str
    catalog_item_id: str
    quantity: int
    condition: CardCondition
    added_at: datetime
    updated_at: datetime
    notes: str | None = None

    @property
    def is_temporary(self) -> bool:
        return is_temp_id(self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "catalog_item_id": self.catalog_item_id,
            "quantity": self.quantity,
            "condition": self.condition.value,
            "added_at": self.added_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectionEntry":
        return cls(
            id=str(data["id"]),
            profile_id=str(data["profile_id"]),
            catalog_item_id=str(data["catalog_item_id"]),
            quantity=int(data["quantity"]),
            condition=CardCondition(data["condition"]),
            added_at=datetime.fromisoformat(data["added_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            notes=data.get("notes") or None,
        )


@dataclass(frozen=True, slots=True)
class EntryChanges:
    """
    Editable fields of an entry. None means "leave unchanged".

    Ownership and catalog reference cannot be edited after creation.
    Pass an empty string as ``notes`` to clear the note.
    """

    quantity: int | None = None
    condition: CardCondition | None = None
    notes: str | None = None

    def is_empty(self) -> bool:
        return self.quantity is None and self.condition is None and self.notes is None

    def validated(self) -> "EntryChanges":
        """Return a copy with quantity and condition checked."""
        return EntryChanges(
            quantity=validate_quantity(self.quantity) if self.quantity is not None else None,
            condition=parse_condition(self.condition) if self.condition is not None else None,
            notes=self.notes,
        )
