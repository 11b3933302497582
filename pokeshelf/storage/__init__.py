from pokeshelf.storage.backends import JsonFileBackend, KeyValueBackend, MemoryBackend
from pokeshelf.storage.local_cache import LocalCacheStore

__all__ = [
    "JsonFileBackend",
    "KeyValueBackend",
    "LocalCacheStore",
    "MemoryBackend",
]
