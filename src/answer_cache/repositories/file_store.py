"""Flat JSON file implementation of DurableStore.

The whole map lives in one JSON object on disk and is mirrored in memory.
Every write goes to a temporary file that atomically replaces the original,
so a crash mid-write leaves the previous version intact.

A missing, unreadable or corrupt file at startup is treated as an empty
cache. It is overwritten by the next successful write.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from answer_cache.config import settings
from answer_cache.exceptions import DurableStoreError

logger = logging.getLogger(__name__)


class JsonFileDurableStore:
    """File-backed durable key -> JSON map.

    Not safe for several processes sharing one file; the slow tier that
    owns it serializes access within a process.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        """Initialize the file store.

        Args:
            path: JSON file location. Defaults to settings.
        """
        self._path = Path(path or settings.cache_durable_path)
        self._data: dict[str, Any] = self._load()

    @classmethod
    def create(cls, path: str | Path | None = None) -> "JsonFileDurableStore":
        return cls(path=path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring cache file %s: top level is not an object", self._path)
            return {}
        return data

    def _flush(self, data: dict[str, Any]) -> None:
        try:
            payload = json.dumps(data)
        except (TypeError, ValueError) as e:
            raise DurableStoreError(f"Cache data is not JSON-serializable: {e}") from e
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                    tmp.write(payload)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise DurableStoreError(f"Cannot write cache file {self._path}: {e}") from e
        self._data = data

    def read(self, key: str) -> dict[str, Any] | None:
        value = self._data.get(key)
        if value is None:
            return None
        if not isinstance(value, dict):
            raise DurableStoreError(f"Corrupt cache value for {key!r}")
        return value

    def write(self, key: str, value: dict[str, Any]) -> None:
        data = dict(self._data)
        data[key] = value
        self._flush(data)

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        data = dict(self._data)
        del data[key]
        self._flush(data)
        return True

    def items(self) -> list[tuple[str, dict[str, Any] | None]]:
        return [
            (key, value if isinstance(value, dict) else None)
            for key, value in self._data.items()
        ]

    def clear(self) -> int:
        count = len(self._data)
        self._flush({})
        return count

    def health_check(self) -> bool:
        """True if the cache file's directory is writable."""
        directory = self._path.parent
        return directory.exists() and os.access(directory, os.W_OK)
