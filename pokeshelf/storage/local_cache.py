"""
Local cache store.

Durable on-device storage for everything the app needs while offline:
the profile list, one collection snapshot per profile, catalog lookups
with expiry, and the queue of collection mutations awaiting replay.

Every accessor treats unreadable or corrupt storage as "no data": reads
return None (or an empty queue), writes are logged and dropped. Callers
must handle absence as a normal, recoverable state.
"""

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pokeshelf.models.catalog import CachedLookup, CatalogItem
from pokeshelf.models.collection import CollectionEntry
from pokeshelf.models.pending import PendingOperation
from pokeshelf.models.profile import Profile
from pokeshelf.storage.backends import JsonFileBackend, KeyValueBackend

logger = logging.getLogger(__name__)

KEY_PREFIX = "pokeshelf"
PROFILES_KEY = f"{KEY_PREFIX}:profiles"
COLLECTION_KEY = f"{KEY_PREFIX}:collection"
SEARCH_KEY_PREFIX = f"{KEY_PREFIX}:search:"
ITEM_KEY_PREFIX = f"{KEY_PREFIX}:item:"
PENDING_KEY = f"{KEY_PREFIX}:pending-operations"
LAST_SYNC_KEY = f"{KEY_PREFIX}:last-sync"

DEFAULT_SEARCH_TTL = 24 * 60 * 60
DEFAULT_ITEM_TTL = 7 * 24 * 60 * 60

# Everything a corrupt or unavailable backend can raise while decoding
_DECODE_ERRORS = (OSError, ValueError, TypeError, KeyError, AttributeError)


def normalize_query(query: str) -> str:
    """Case- and whitespace-normalise a search query for use as a cache key."""
    return " ".join(query.lower().split())


class LocalCacheStore:
    """Typed accessors over a key-value backend."""

    def __init__(
        self,
        backend: KeyValueBackend,
        search_ttl: float = DEFAULT_SEARCH_TTL,
        item_ttl: float = DEFAULT_ITEM_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.search_ttl = search_ttl
        self.item_ttl = item_ttl
        self.clock = clock

    @classmethod
    def from_path(
        cls,
        path: Path | str,
        search_ttl: float = DEFAULT_SEARCH_TTL,
        item_ttl: float = DEFAULT_ITEM_TTL,
    ) -> "LocalCacheStore":
        """Create a store persisted to a JSON file."""
        return cls(JsonFileBackend(path), search_ttl=search_ttl, item_ttl=item_ttl)

    # --- Raw access ---

    def _read(self, key: str) -> Any | None:
        try:
            return self.backend.get(key)
        except _DECODE_ERRORS as e:
            logger.warning("Error reading %s from local cache: %s", key, e)
            return None

    def _write(self, key: str, value: Any) -> None:
        try:
            self.backend.set(key, value)
        except (OSError, ValueError, TypeError) as e:
            logger.error("Error saving %s to local cache: %s", key, e)

    def _remove(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except (OSError, ValueError) as e:
            logger.error("Error removing %s from local cache: %s", key, e)

    # --- Profiles ---

    def get_profiles(self) -> list[Profile] | None:
        raw = self._read(PROFILES_KEY)
        if raw is None:
            return None
        try:
            return [Profile.from_dict(p) for p in raw]
        except _DECODE_ERRORS as e:
            logger.warning("Discarding corrupt cached profiles: %s", e)
            return None

    def set_profiles(self, profiles: list[Profile]) -> None:
        self._write(PROFILES_KEY, [p.to_dict() for p in profiles])

    # --- Collections ---

    def _all_collections(self) -> dict[str, Any]:
        raw = self._read(COLLECTION_KEY)
        return raw if isinstance(raw, dict) else {}

    def get_collection(self, profile_id: str) -> list[CollectionEntry] | None:
        """Cached collection for a profile, or None if never cached."""
        raw = self._all_collections().get(profile_id)
        if raw is None:
            return None
        try:
            return [CollectionEntry.from_dict(e) for e in raw]
        except _DECODE_ERRORS as e:
            logger.warning("Discarding corrupt cached collection for %s: %s", profile_id, e)
            return None

    def set_collection(self, profile_id: str, entries: list[CollectionEntry]) -> None:
        collections = self._all_collections()
        collections[profile_id] = [e.to_dict() for e in entries]
        self._write(COLLECTION_KEY, collections)

    # --- Catalog lookups ---

    def _get_lookup(self, key: str, lifetime: float) -> Any | None:
        raw = self._read(key)
        if raw is None:
            return None
        try:
            lookup = CachedLookup.from_dict(raw)
        except _DECODE_ERRORS as e:
            logger.warning("Discarding corrupt cache entry %s: %s", key, e)
            self._remove(key)
            return None

        if lookup.is_valid(self.clock(), lifetime):
            return lookup.data

        # Expired lookups are logically absent
        self._remove(key)
        return None

    def _set_lookup(self, key: str, data: Any) -> None:
        self._write(key, CachedLookup(data=data, timestamp=self.clock()).to_dict())

    def get_cached_search(self, query: str) -> list[CatalogItem] | None:
        return self._get_lookup(SEARCH_KEY_PREFIX + normalize_query(query), self.search_ttl)

    def set_cached_search(self, query: str, results: list[CatalogItem]) -> None:
        self._set_lookup(SEARCH_KEY_PREFIX + normalize_query(query), results)

    def get_cached_item(self, item_id: str) -> CatalogItem | None:
        return self._get_lookup(ITEM_KEY_PREFIX + item_id, self.item_ttl)

    def set_cached_item(self, item: CatalogItem) -> None:
        self._set_lookup(ITEM_KEY_PREFIX + str(item["id"]), item)

    # --- Pending operations ---

    def get_pending_operations(self) -> list[PendingOperation]:
        raw = self._read(PENDING_KEY)
        if not raw:
            return []
        operations = []
        for item in raw:
            try:
                operations.append(PendingOperation.from_dict(item))
            except _DECODE_ERRORS as e:
                logger.warning("Dropping corrupt pending operation: %s", e)
        return operations

    def append_pending_operation(self, operation: PendingOperation) -> None:
        operations = self.get_pending_operations()
        operations.append(operation)
        self.replace_pending_operations(operations)

    def remove_pending_operation(self, operation_id: str) -> None:
        operations = [op for op in self.get_pending_operations() if op.id != operation_id]
        self.replace_pending_operations(operations)

    def replace_pending_operations(self, operations: list[PendingOperation]) -> None:
        if not operations:
            self.clear_pending_operations()
            return
        self._write(PENDING_KEY, [op.to_dict() for op in operations])

    def clear_pending_operations(self) -> None:
        self._remove(PENDING_KEY)

    # --- Misc ---

    def get_last_sync_time(self) -> float | None:
        raw = self._read(LAST_SYNC_KEY)
        return float(raw) if isinstance(raw, int | float) else None

    def set_last_sync_time(self, timestamp: float) -> None:
        self._write(LAST_SYNC_KEY, timestamp)

    def clear_all(self) -> None:
        """Remove every key this store owns."""
        try:
            keys = self.backend.keys()
        except (OSError, ValueError) as e:
            logger.error("Error listing local cache keys: %s", e)
            return
        for key in keys:
            if key.startswith(f"{KEY_PREFIX}:"):
                self._remove(key)
