"""
Sync engine.

The only mutation API the rest of the app may call. Every collection
change is written to the local cache first, then mirrored to the remote
store. When the store cannot be reached the change is queued and
replayed later; when the store refuses the change it is rolled back and
the error is raised.

Mutation lifecycle:
    requested -> cached optimistically -> confirmed | queued -> replayed

Reads are network-first: a successful pull replaces the cached list,
a failed one falls back to the cache. Queued changes are re-applied on
top of every pulled collection so a pull never hides a local edit.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime

from pokeshelf.db.remote_store import RemoteStore
from pokeshelf.models.collection import (
    CardCondition,
    CollectionEntry,
    EntryChanges,
    new_temp_id,
    parse_condition,
    validate_quantity,
)
from pokeshelf.models.failure import (
    EntryNotFoundError,
    FailureKind,
    OfflineError,
    RemoteStoreError,
    invalid_input,
)
from pokeshelf.models.pending import OperationKind, PendingOperation
from pokeshelf.models.profile import Profile
from pokeshelf.models.sync import ReplayReport, SyncStatus
from pokeshelf.storage.local_cache import LocalCacheStore
from pokeshelf.sync.connectivity import Connectivity

logger = logging.getLogger(__name__)

StatusListener = Callable[[SyncStatus], None]


class SyncEngine:
    """
    Offline-first coordinator between the local cache and the remote store.

    Args:
        cache: Local cache store
        store: Remote store client
        connectivity: Online/offline state; defaults to always online
        clock: Epoch-seconds clock, injectable for tests
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        store: RemoteStore,
        connectivity: Connectivity | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache = cache
        self.store = store
        self.connectivity = connectivity or Connectivity()
        self.clock = clock

        self._status = SyncStatus.IDLE
        self._listeners: list[StatusListener] = []
        self._entry_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._replay_lock = asyncio.Lock()
        self._background: set[asyncio.Task[ReplayReport]] = set()

    # --- Status ---

    @property
    def status(self) -> SyncStatus:
        return self._status

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_status(self, status: SyncStatus) -> None:
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Sync status listener failed")

    def watch_connectivity(self) -> Callable[[], None]:
        """
        Replay the pending queue whenever connectivity comes back.

        Returns a function that stops watching.
        """

        def on_change(online: bool) -> None:
            if not online:
                self._set_status(SyncStatus.OFFLINE)
                return
            task = asyncio.get_running_loop().create_task(self.sync_pending_operations())
            self._background.add(task)
            task.add_done_callback(self._background.discard)

        return self.connectivity.subscribe(on_change)

    # --- Helpers ---

    def _online(self) -> bool:
        return self.connectivity.is_online()

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), UTC)

    @asynccontextmanager
    async def _entry_lock(self, entry_id: str) -> AsyncIterator[None]:
        """Serialise work on one entry. The lock is forgotten once nobody holds or awaits it."""
        lock = self._entry_locks.setdefault(entry_id, asyncio.Lock())
        self._lock_users[entry_id] = self._lock_users.get(entry_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[entry_id] -= 1
            if not self._lock_users[entry_id]:
                del self._lock_users[entry_id]
                del self._entry_locks[entry_id]

    def _went_offline(self, error: RemoteStoreError) -> None:
        logger.warning("Remote store unreachable, working offline: %s", error)
        self.connectivity.mark_offline()

    def _is_queued(self, operation_id: str) -> bool:
        return any(op.id == operation_id for op in self.cache.get_pending_operations())

    def _enqueue(self, kind: OperationKind, entry: CollectionEntry) -> PendingOperation:
        operation = PendingOperation(kind=kind, payload=entry, timestamp=self.clock())
        self.cache.append_pending_operation(operation)
        logger.warning("Queued %s of entry %s for later sync", kind.value, entry.id)
        return operation

    def _cached_entries(self, profile_id: str) -> list[CollectionEntry]:
        return self.cache.get_collection(profile_id) or []

    def _find_cached(self, profile_id: str, entry_id: str) -> CollectionEntry | None:
        return next((e for e in self._cached_entries(profile_id) if e.id == entry_id), None)

    def _put_cached(
        self, profile_id: str, entry: CollectionEntry, replaces: str | None = None
    ) -> None:
        """Replace the entry with id ``replaces`` or its own id, or prepend it."""
        targets = {replaces or entry.id, entry.id}
        entries = self._cached_entries(profile_id)
        for i, existing in enumerate(entries):
            if existing.id in targets:
                entries[i] = entry
                break
        else:
            entries.insert(0, entry)
        self.cache.set_collection(profile_id, entries)

    def _drop_cached(self, profile_id: str, entry_id: str) -> None:
        entries = self._cached_entries(profile_id)
        remaining = [e for e in entries if e.id != entry_id]
        if len(remaining) != len(entries):
            self.cache.set_collection(profile_id, remaining)

    def _has_pending(self, entry_id: str, exclude: str | None = None) -> bool:
        return any(
            op.entry_id == entry_id and op.id != exclude
            for op in self.cache.get_pending_operations()
        )

    def _discard_pending_for(self, entry_id: str) -> None:
        operations = self.cache.get_pending_operations()
        self.cache.replace_pending_operations([op for op in operations if op.entry_id != entry_id])

    def _remap_pending(self, old_id: str, new_id: str) -> None:
        """Point queued operations at a confirmed entry's server id."""
        operations = self.cache.get_pending_operations()
        if not any(op.entry_id == old_id for op in operations):
            return
        self.cache.replace_pending_operations(
            [
                replace(op, payload=replace(op.payload, id=new_id)) if op.entry_id == old_id else op
                for op in operations
            ]
        )

    def _rebase(self, profile_id: str, entries: list[CollectionEntry]) -> list[CollectionEntry]:
        """Re-apply queued operations for a profile on top of a pulled collection."""
        result = list(entries)
        for op in self.cache.get_pending_operations():
            if op.profile_id != profile_id:
                continue
            result = [e for e in result if e.id != op.entry_id]
            if op.kind == OperationKind.CREATE:
                result.insert(0, op.payload)
            elif op.kind == OperationKind.UPDATE:
                previous = next((e for e in entries if e.id == op.entry_id), None)
                position = entries.index(previous) if previous else 0
                result.insert(min(position, len(result)), op.payload)
        return result

    # --- Profiles ---

    async def sync_profiles_from_server(self) -> list[Profile]:
        """
        Pull all profiles and cache them.

        Falls back to the cached list when offline or when the pull fails.

        Raises:
            OfflineError: If the pull is impossible and nothing is cached
            RemoteStoreError: If the pull fails and nothing is cached
        """
        if not self._online():
            cached = self.cache.get_profiles()
            if cached is not None:
                return cached
            raise OfflineError(
                "Offline and no cached profiles available", kind=FailureKind.NO_CACHED_DATA
            )

        try:
            return await self._pull_profiles()
        except RemoteStoreError as e:
            logger.warning("Error syncing profiles from server: %s", e)
            cached = self.cache.get_profiles()
            if cached is not None:
                return cached
            raise

    async def _pull_profiles(self) -> list[Profile]:
        profiles = await self.store.list_profiles()
        self.cache.set_profiles(profiles)
        return profiles

    async def create_profile(self, name: str, avatar: str | None = None) -> Profile:
        """
        Create a profile. Requires connectivity.

        Raises:
            KnownError: If the name is blank
            OfflineError: If offline
            RemoteStoreError: If the store fails
        """
        name = name.strip()
        if not name:
            raise invalid_input("Profile name cannot be empty")
        if not self._online():
            raise OfflineError("Cannot create a profile while offline")

        profile = await self.store.create_profile(name, avatar)

        profiles = self.cache.get_profiles() or []
        profiles.append(profile)
        self.cache.set_profiles(profiles)
        logger.info("Created profile %s (%s)", profile.id, profile.name)
        return profile

    # --- Collection reads ---

    async def sync_collection_from_server(self, profile_id: str) -> list[CollectionEntry]:
        """
        Pull a profile's collection and cache it.

        Queued local changes are re-applied on top of the pulled rows.
        Falls back to the cached collection when offline or on failure.

        Raises:
            OfflineError: If the pull is impossible and nothing is cached
            RemoteStoreError: If the pull fails and nothing is cached
        """
        if not self._online():
            cached = self.cache.get_collection(profile_id)
            if cached is not None:
                return cached
            raise OfflineError(
                "Offline and no cached collection available", kind=FailureKind.NO_CACHED_DATA
            )

        try:
            return await self._pull_collection(profile_id)
        except RemoteStoreError as e:
            logger.warning("Error syncing collection %s from server: %s", profile_id, e)
            cached = self.cache.get_collection(profile_id)
            if cached is not None:
                return cached
            raise

    async def _pull_collection(self, profile_id: str) -> list[CollectionEntry]:
        entries = self._rebase(profile_id, await self.store.list_entries(profile_id))
        self.cache.set_collection(profile_id, entries)
        self.cache.set_last_sync_time(self.clock())
        return entries

    def get_cached_collection(self, profile_id: str) -> list[CollectionEntry]:
        """Cached collection without touching the network (empty if never synced)."""
        return self._cached_entries(profile_id)

    # --- Collection mutations ---

    async def add_entry(
        self,
        profile_id: str,
        catalog_item_id: str,
        quantity: int = 1,
        condition: CardCondition | str = CardCondition.NEAR_MINT,
        notes: str | None = None,
    ) -> CollectionEntry:
        """
        Add a card to a profile's collection.

        Returns the confirmed entry, or the optimistic one (temporary id)
        if the store could not be reached.

        Raises:
            KnownError: If quantity, condition or card id is invalid
            RemoteStoreError: If the store refused the entry (not retryable)
        """
        quantity = validate_quantity(quantity)
        condition = parse_condition(condition)
        if not catalog_item_id or not catalog_item_id.strip():
            raise invalid_input("Card id cannot be empty")

        now = self._now()
        entry = CollectionEntry(
            id=new_temp_id(),
            profile_id=profile_id,
            catalog_item_id=catalog_item_id.strip(),
            quantity=quantity,
            condition=condition,
            added_at=now,
            updated_at=now,
            notes=notes or None,
        )

        async with self._entry_lock(entry.id):
            self._put_cached(profile_id, entry)

            if not self._online():
                self._enqueue(OperationKind.CREATE, entry)
                return entry

            try:
                confirmed = await self.store.create_entry(entry, client_ref=entry.id)
            except RemoteStoreError as e:
                if e.retryable:
                    self._enqueue(OperationKind.CREATE, entry)
                    self._went_offline(e)
                    return entry
                self._drop_cached(profile_id, entry.id)
                raise

            self._put_cached(profile_id, confirmed, replaces=entry.id)
            return confirmed

    async def update_entry(
        self,
        profile_id: str,
        entry_id: str,
        quantity: int | None = None,
        condition: CardCondition | str | None = None,
        notes: str | None = None,
    ) -> CollectionEntry:
        """
        Edit quantity, condition or notes of an entry.

        Arguments left as None are unchanged; an empty ``notes`` clears
        the note.

        Raises:
            KnownError: If no change is given or a value is invalid
            EntryNotFoundError: If the entry is not in the local cache
            RemoteStoreError: If the store refused the change (not retryable)
        """
        changes = EntryChanges(
            quantity=quantity,
            condition=parse_condition(condition) if condition is not None else None,
            notes=notes,
        ).validated()
        if changes.is_empty():
            raise invalid_input("No changes given")

        async with self._entry_lock(entry_id):
            current = self._find_cached(profile_id, entry_id)
            if current is None:
                raise EntryNotFoundError(profile_id, entry_id)

            updated = replace(
                current,
                quantity=changes.quantity if changes.quantity is not None else current.quantity,
                condition=changes.condition or current.condition,
                notes=(changes.notes or None) if changes.notes is not None else current.notes,
                updated_at=self._now(),
            )
            self._put_cached(profile_id, updated)

            # Temporary or already-queued entries must wait behind their queued operations
            if current.is_temporary or self._has_pending(entry_id) or not self._online():
                self._enqueue(OperationKind.UPDATE, updated)
                return updated

            try:
                confirmed = await self.store.update_entry(updated)
            except RemoteStoreError as e:
                if e.retryable:
                    self._enqueue(OperationKind.UPDATE, updated)
                    self._went_offline(e)
                    return updated
                self._put_cached(profile_id, current)
                raise

            self._put_cached(profile_id, confirmed)
            return confirmed

    async def delete_entry(self, profile_id: str, entry_id: str) -> None:
        """
        Remove an entry from a profile's collection.

        Raises:
            EntryNotFoundError: If the entry is not in the local cache
            RemoteStoreError: If the store refused the delete (not retryable)
        """
        async with self._entry_lock(entry_id):
            current = self._find_cached(profile_id, entry_id)
            if current is None:
                raise EntryNotFoundError(profile_id, entry_id)

            self._drop_cached(profile_id, entry_id)

            if current.is_temporary:
                # Never reached the store; forget its queued create and edits
                self._discard_pending_for(entry_id)
                return

            if self._has_pending(entry_id) or not self._online():
                self._enqueue(OperationKind.DELETE, current)
                return

            try:
                await self.store.delete_entry(entry_id)
            except RemoteStoreError as e:
                # The row still exists remotely, so it stays visible locally
                self._put_cached(profile_id, current)
                if e.retryable:
                    self._enqueue(OperationKind.DELETE, current)
                    self._went_offline(e)
                    return
                raise

    # --- Replay ---

    async def sync_pending_operations(self) -> ReplayReport:
        """
        Replay queued operations against the remote store, in order.

        Each operation is removed from the queue as soon as it succeeds.
        Operations the store refuses are dropped and rolled back locally;
        operations that hit a retryable error stay queued, and later
        operations on the same entry are skipped so order is preserved.
        """
        async with self._replay_lock:
            report = ReplayReport()
            pending = self.cache.get_pending_operations()

            if not self._online():
                self._set_status(SyncStatus.OFFLINE)
                report.skipped.extend(pending)
                return report

            if not pending:
                if self._status == SyncStatus.OFFLINE:
                    self._set_status(SyncStatus.IDLE)
                return report

            self._set_status(SyncStatus.SYNCING)
            logger.info("Replaying %d pending operations", len(pending))

            id_map: dict[str, str] = {}
            blocked: set[str] = set()
            dropped: set[str] = set()

            for original in pending:
                op = original
                if op.entry_id in id_map:
                    op = replace(op, payload=replace(op.payload, id=id_map[op.entry_id]))

                if op.entry_id in dropped:
                    self.cache.remove_pending_operation(op.id)
                    report.rejected.append(op)
                    continue
                if op.entry_id in blocked:
                    report.skipped.append(op)
                    continue

                async with self._entry_lock(op.entry_id):
                    if not self._is_queued(op.id):
                        # Discarded while an earlier operation was in flight
                        continue
                    try:
                        confirmed_id = await self._apply(op)
                    except RemoteStoreError as e:
                        if e.retryable:
                            logger.error("Replay of %s %s failed: %s", op.kind.value, op.entry_id, e)
                            report.failed.append(op)
                            blocked.add(op.entry_id)
                            if op.kind == OperationKind.DELETE:
                                if self._find_cached(op.profile_id, op.entry_id) is None:
                                    self._put_cached(op.profile_id, op.payload)
                            continue

                        logger.error(
                            "Dropping %s of %s rejected by the store: %s",
                            op.kind.value,
                            op.entry_id,
                            e,
                        )
                        self.cache.remove_pending_operation(op.id)
                        report.rejected.append(op)
                        self._roll_back(op, e)
                        if op.kind == OperationKind.CREATE:
                            dropped.add(op.entry_id)
                        continue

                    self.cache.remove_pending_operation(op.id)
                    report.applied.append(op)
                    if confirmed_id is not None and confirmed_id != op.entry_id:
                        id_map[op.entry_id] = confirmed_id
                        self._remap_pending(op.entry_id, confirmed_id)

            self._set_status(
                SyncStatus.ERROR if report.failed or report.rejected else SyncStatus.IDLE
            )
            logger.info("Replay finished: %s", report.summary())
            return report

    async def _apply(self, op: PendingOperation) -> str | None:
        """Issue one queued operation. Returns the server id for creates."""
        entry = op.payload

        if op.kind == OperationKind.CREATE:
            confirmed = await self.store.create_entry(entry, client_ref=entry.id)
            cached = self._find_cached(entry.profile_id, entry.id)
            if cached is not None and self._has_pending(entry.id, exclude=op.id):
                # Later edits are still queued; keep local fields, adopt the server id
                confirmed = replace(cached, id=confirmed.id, added_at=confirmed.added_at)
            self._put_cached(entry.profile_id, confirmed, replaces=entry.id)
            return confirmed.id

        if op.kind == OperationKind.UPDATE:
            confirmed = await self.store.update_entry(entry)
            if not self._has_pending(entry.id, exclude=op.id):
                if self._find_cached(entry.profile_id, entry.id) is not None:
                    self._put_cached(entry.profile_id, confirmed)
            return None

        # Deleting a row that is already gone counts as success
        await self.store.delete_entry(entry.id)
        self._drop_cached(entry.profile_id, entry.id)
        return None

    def _roll_back(self, op: PendingOperation, error: RemoteStoreError) -> None:
        entry = op.payload
        if op.kind == OperationKind.CREATE:
            self._drop_cached(entry.profile_id, entry.id)
        elif op.kind == OperationKind.UPDATE and error.kind == FailureKind.NOT_FOUND:
            self._drop_cached(entry.profile_id, entry.id)
        elif op.kind == OperationKind.DELETE:
            if self._find_cached(entry.profile_id, entry.id) is None:
                self._put_cached(entry.profile_id, entry)

    async def full_sync(self, profile_id: str) -> ReplayReport:
        """
        Push queued changes, then pull profiles and the profile's collection.

        The pull only happens when the queue drained completely, so a
        failed replay can never be overwritten by older server state.

        Raises:
            RemoteStoreError: If the pull fails
        """
        if not self._online():
            self._set_status(SyncStatus.OFFLINE)
            report = ReplayReport()
            report.skipped.extend(self.cache.get_pending_operations())
            return report

        self._set_status(SyncStatus.SYNCING)
        report = await self.sync_pending_operations()

        if not report.fully_synced:
            logger.warning(
                "Skipping server pull for %s: %d operations still pending",
                profile_id,
                report.remaining,
            )
            self._set_status(SyncStatus.ERROR)
            return report

        try:
            await self._pull_profiles()
            await self._pull_collection(profile_id)
        except RemoteStoreError as e:
            logger.error("Error during full sync of %s: %s", profile_id, e)
            self._set_status(SyncStatus.ERROR)
            raise

        self._set_status(SyncStatus.ERROR if report.rejected else SyncStatus.IDLE)
        return report
