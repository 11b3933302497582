"""
Remote store client.

Thin request/response wrapper over the CRUD operations: one transaction
per call, domain models in and out, and every failure classified as
retryable (the store could not be reached) or not (the store refused).
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import text
from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pokeshelf.db import operations
from pokeshelf.models.collection import CollectionEntry
from pokeshelf.models.failure import FailureKind, RemoteStoreError
from pokeshelf.models.profile import Profile

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    ConnectionError,
    TimeoutError,
    OSError,
)


def classify_store_error(error: Exception) -> RemoteStoreError:
    """
    Map a database exception to a RemoteStoreError.

    Constraint and data errors are permanent: replaying the same write
    will fail the same way. Connection-level errors are retryable.
    """
    if isinstance(error, RemoteStoreError):
        return error
    if isinstance(error, IntegrityError | DataError):
        return RemoteStoreError(
            "The remote store rejected the change",
            retryable=False,
            detail=str(error.orig) if error.orig is not None else str(error),
        )
    if isinstance(error, _RETRYABLE_ERRORS):
        return RemoteStoreError("The remote store is unreachable", retryable=True, detail=str(error))
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return RemoteStoreError("The remote store connection was lost", retryable=True, detail=str(error))
    return RemoteStoreError("The remote store failed", retryable=False, detail=str(error))


class RemoteStore:
    """
    CRUD client for profiles and collection entries.

    No caching: every call is a round trip.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _run(self, action: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    return await action(session)
        except (SQLAlchemyError, OSError) as e:
            error = classify_store_error(e)
            logger.warning(
                "Remote store call failed (retryable=%s): %s", error.retryable, error.detail
            )
            raise error from e

    async def ping(self) -> bool:
        """True if the store answers a trivial query."""
        try:
            await self._run(lambda session: session.execute(text("SELECT 1")))
        except RemoteStoreError:
            return False
        return True

    # --- Profiles ---

    async def list_profiles(self) -> list[Profile]:
        async def action(session: AsyncSession) -> list[Profile]:
            rows = await operations.list_profiles(session)
            return [operations.profile_to_model(row) for row in rows]

        return await self._run(action)

    async def create_profile(self, name: str, avatar: str | None = None) -> Profile:
        async def action(session: AsyncSession) -> Profile:
            row = await operations.create_profile(session, name, avatar)
            return operations.profile_to_model(row)

        return await self._run(action)

    # --- Collection entries ---

    async def list_entries(self, profile_id: str) -> list[CollectionEntry]:
        async def action(session: AsyncSession) -> list[CollectionEntry]:
            rows = await operations.list_entries(session, profile_id)
            return [operations.entry_to_model(row) for row in rows]

        return await self._run(action)

    async def create_entry(
        self, entry: CollectionEntry, client_ref: str | None = None
    ) -> CollectionEntry:
        """
        Insert an entry and return the stored row.

        The entry's own id is ignored; the store assigns one. Pass the
        temporary id as ``client_ref`` to make the insert idempotent.

        Raises:
            RemoteStoreError: Non-retryable NOT_FOUND if the profile is unknown
        """

        async def action(session: AsyncSession) -> CollectionEntry:
            if await operations.get_profile(session, entry.profile_id) is None:
                raise RemoteStoreError(
                    f"Profile '{entry.profile_id}' does not exist",
                    retryable=False,
                    kind=FailureKind.NOT_FOUND,
                )
            row = await operations.insert_entry(
                session,
                profile_id=entry.profile_id,
                catalog_item_id=entry.catalog_item_id,
                quantity=entry.quantity,
                condition=entry.condition,
                notes=entry.notes,
                client_ref=client_ref,
            )
            return operations.entry_to_model(row)

        return await self._run(action)

    async def update_entry(self, entry: CollectionEntry) -> CollectionEntry:
        """
        Write the editable fields of an entry and return the stored row.

        Raises:
            RemoteStoreError: Non-retryable NOT_FOUND if the entry is unknown
        """

        async def action(session: AsyncSession) -> CollectionEntry:
            row = await operations.update_entry(
                session, entry.id, entry.quantity, entry.condition, entry.notes
            )
            if row is None:
                raise RemoteStoreError(
                    f"Collection entry '{entry.id}' does not exist",
                    retryable=False,
                    kind=FailureKind.NOT_FOUND,
                )
            return operations.entry_to_model(row)

        return await self._run(action)

    async def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry. Returns False if it was already gone."""
        return await self._run(lambda session: operations.delete_entry(session, entry_id))
