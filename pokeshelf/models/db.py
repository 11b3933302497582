"""
SQLAlchemy ORM models for the remote store.

Mirrors the hosted relational schema: profiles own collection entries,
and deleting a profile cascades to its entries.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from pokeshelf.models.collection import CARD_CONDITIONS

_CONDITION_VALUES = ", ".join(f"'{c.value}'" for c in CARD_CONDITIONS)


def _new_uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ProfileDB(Base):
    """A profile row."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)

    entries: Mapped[list["CollectionEntryDB"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<ProfileDB(id={self.id}, name={self.name})>"


class CollectionEntryDB(Base):
    """
    A collection entry row.

    ``client_ref`` holds the temporary id of an entry that was created
    offline, so a replayed create can be recognised and not inserted twice.
    """

    __tablename__ = "collection_entries"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_collection_entries_quantity_positive"),
        CheckConstraint(
            f"condition IN ({_CONDITION_VALUES})", name="ck_collection_entries_condition"
        ),
        Index("idx_collection_entries_added_at", "added_at"),
        Index("idx_collection_entries_profile_item", "profile_id", "catalog_item_id"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_uuid)
    profile_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    catalog_item_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    condition: Mapped[str] = mapped_column(String(16), nullable=False)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_ref: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    profile: Mapped["ProfileDB"] = relationship(back_populates="entries")

    def __repr__(self) -> str:
        return f"<CollectionEntryDB(id={self.id}, item={self.catalog_item_id}, qty={self.quantity})>"
