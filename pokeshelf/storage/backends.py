"""
Key-value backends for the local cache.

Backends store JSON-serialisable values under string keys. They are
synchronous: every write is flushed before returning, so a crash never
loses an acknowledged optimistic update.
"""

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueBackend(Protocol):
    """Minimal storage interface used by LocalCacheStore."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryBackend:
    """In-process backend. Values are round-tripped through JSON like on disk."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileBackend:
    """
    Single-file JSON backend.

    The whole document is loaded on first access and rewritten atomically
    (write to a temp file, then replace) on every mutation. A file that
    does not hold a JSON object is moved aside to ``<name>.corrupt`` and
    the store starts empty.

    Raises:
        OSError: If the file cannot be read or written
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] | None = None

    @property
    def corrupt_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}.corrupt")

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            self._data = self._read_file() if self.path.exists() else {}
        return self._data

    def _read_file(self) -> dict[str, Any]:
        with open(self.path, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                logger.error("Cache file %s is not valid JSON: %s", self.path, e)
                data = None

        if isinstance(data, dict):
            return data

        logger.error("Discarding unreadable cache file %s", self.path)
        try:
            os.replace(self.path, self.corrupt_path)
        except OSError as e:
            logger.warning("Could not move %s aside: %s", self.path, e)
        return {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Any | None:
        value = self._load().get(key)
        return None if value is None else copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        # Round-trip so callers can't mutate stored state through shared references
        data[key] = json.loads(json.dumps(value))
        self._flush()

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._flush()

    def keys(self) -> list[str]:
        return list(self._load())
