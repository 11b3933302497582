"""
Database CRUD operations.

Provides async functions for creating, reading, updating, and deleting
profiles and collection entries. Callers own the transaction.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pokeshelf.models.collection import CardCondition, CollectionEntry
from pokeshelf.models.db import CollectionEntryDB, ProfileDB
from pokeshelf.models.profile import Profile

# --- Profile Operations ---


async def list_profiles(session: AsyncSession) -> list[ProfileDB]:
    """Get all profiles, oldest first."""
    result = await session.execute(select(ProfileDB).order_by(ProfileDB.created_at.asc()))
    return list(result.scalars().all())


async def get_profile(session: AsyncSession, profile_id: str) -> ProfileDB | None:
    """
    Get a profile by id.

    Returns None if no such profile exists.
    """
    return await session.get(ProfileDB, profile_id)


async def create_profile(
    session: AsyncSession, name: str, avatar: str | None = None
) -> ProfileDB:
    """Create a new profile."""
    profile = ProfileDB(name=name, avatar=avatar or None)
    session.add(profile)
    await session.flush()
    return profile


def profile_to_model(profile: ProfileDB) -> Profile:
    """Convert a database profile to a domain model."""
    return Profile(
        id=str(profile.id),
        name=profile.name,
        created_at=profile.created_at,
        avatar=profile.avatar,
    )


# --- Collection Entry Operations ---


async def list_entries(session: AsyncSession, profile_id: str) -> list[CollectionEntryDB]:
    """Get a profile's collection entries, most recently added first."""
    result = await session.execute(
        select(CollectionEntryDB)
        .where(CollectionEntryDB.profile_id == profile_id)
        .order_by(CollectionEntryDB.added_at.desc())
    )
    return list(result.scalars().all())


async def get_entry(session: AsyncSession, entry_id: str) -> CollectionEntryDB | None:
    """Get a collection entry by id."""
    return await session.get(CollectionEntryDB, entry_id)


async def get_entry_by_client_ref(
    session: AsyncSession, client_ref: str
) -> CollectionEntryDB | None:
    """Get the entry created from a given temporary id, if any."""
    result = await session.execute(
        select(CollectionEntryDB).where(CollectionEntryDB.client_ref == client_ref)
    )
    return result.scalar_one_or_none()


async def insert_entry(
    session: AsyncSession,
    profile_id: str,
    catalog_item_id: str,
    quantity: int,
    condition: CardCondition,
    notes: str | None = None,
    client_ref: str | None = None,
) -> CollectionEntryDB:
    """
    Insert a collection entry.

    If ``client_ref`` matches an existing entry, that entry is returned
    unchanged instead of inserting a duplicate.

    Raises IntegrityError if the profile does not exist or a check
    constraint fails.
    """
    if client_ref:
        existing = await get_entry_by_client_ref(session, client_ref)
        if existing:
            return existing

    entry = CollectionEntryDB(
        profile_id=profile_id,
        catalog_item_id=catalog_item_id,
        quantity=quantity,
        condition=condition.value,
        notes=notes or None,
        client_ref=client_ref,
    )
    session.add(entry)
    await session.flush()
    await session.refresh(entry)
    return entry


async def update_entry(
    session: AsyncSession,
    entry_id: str,
    quantity: int,
    condition: CardCondition,
    notes: str | None,
) -> CollectionEntryDB | None:
    """
    Update the editable fields of an entry.

    Returns None if the entry does not exist.
    """
    entry = await get_entry(session, entry_id)
    if entry is None:
        return None

    entry.quantity = quantity
    entry.condition = condition.value
    entry.notes = notes or None
    await session.flush()
    await session.refresh(entry)
    return entry


async def delete_entry(session: AsyncSession, entry_id: str) -> bool:
    """
    Delete an entry.

    Returns True if deleted, False if not found.
    """
    entry = await get_entry(session, entry_id)
    if entry is None:
        return False

    await session.delete(entry)
    await session.flush()
    return True


def entry_to_model(entry: CollectionEntryDB) -> CollectionEntry:
    """Convert a database entry to a domain model."""
    return CollectionEntry(
        id=str(entry.id),
        profile_id=str(entry.profile_id),
        catalog_item_id=entry.catalog_item_id,
        quantity=entry.quantity,
        condition=CardCondition(entry.condition),
        added_at=entry.added_at,
        updated_at=entry.updated_at,
        notes=entry.notes,
    )
