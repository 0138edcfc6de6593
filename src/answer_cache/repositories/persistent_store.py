"""Bounded cache tier over a durable backend.

This is the slow tier of the tiered cache. It satisfies the CacheStore
protocol, adding capacity cleanup and failure isolation on top of a raw
DurableStore:

- Capacity is enforced by removing the oldest entries by ``created_at``
  until the tier is back at ``max_size``. Cleanup runs every
  ``cleanup_every`` writes (and on demand), so the backend may briefly
  hold more than ``max_size`` entries between runs.
- Every backend failure (``DurableStoreError``) and every undecodable
  entry is logged and treated as a miss or a skipped write. Nothing
  raised by the backend reaches the caller.
- One lock guards the whole tier, including the read-modify-write of
  cleanup, so cleanup never races a concurrent ``set``.
"""

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from answer_cache.config import settings
from answer_cache.entities import CacheEntryEntity
from answer_cache.exceptions import DurableStoreError
from answer_cache.protocols import DurableStore
from answer_cache.similarity import jaccard_similarity

logger = logging.getLogger(__name__)


class PersistentBoundedStore:
    """Durable, bounded key -> entry map with timestamp-ordered cleanup."""

    def __init__(
        self,
        durable: DurableStore,
        max_size: int,
        ttl: float | None = None,
        cleanup_every: int = 1,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the slow tier.

        Args:
            durable: Backend holding the JSON-serialized entries.
            max_size: Capacity enforced by cleanup.
            ttl: Entry lifetime in seconds. None or 0 means entries never expire.
            cleanup_every: Run capacity cleanup after this many writes.
            clock: Returns the current Unix time. Injected for tests.
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._durable = durable
        self._max_size = max_size
        self._ttl = ttl or None
        self._cleanup_every = max(1, cleanup_every)
        self._clock = clock
        self._lock = threading.Lock()
        self._writes_since_cleanup = 0
        self._hits = 0
        self._misses = 0
        self._failures = 0

    @classmethod
    def create(
        cls,
        durable: DurableStore,
        max_size: int | None = None,
        ttl: float | None = None,
    ) -> "PersistentBoundedStore":
        """Factory method to create PersistentBoundedStore from settings.

        Args:
            durable: Backend holding the entries (required).
            max_size: Capacity. If None, uses settings.
            ttl: Entry lifetime in seconds. If None, uses settings.

        Returns:
            Configured PersistentBoundedStore
        """
        return cls(
            durable=durable,
            max_size=max_size or settings.cache_durable_max_size,
            ttl=ttl if ttl is not None else settings.cache_ttl_seconds,
            cleanup_every=settings.cache_durable_cleanup_every,
        )

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def durable(self) -> DurableStore:
        """Get the underlying backend (for testing)."""
        return self._durable

    def _expired(self, entry: CacheEntryEntity) -> bool:
        return self._ttl is not None and self._clock() - entry.created_at > self._ttl

    def _record_failure(self, action: str, error: Exception) -> None:
        self._failures += 1
        logger.warning("Durable cache %s failed, degrading to miss: %s", action, error)

    def _discard(self, key: str) -> None:
        try:
            self._durable.delete(key)
        except DurableStoreError as e:
            self._record_failure("delete", e)

    def _decoded_items(self) -> list[tuple[str, CacheEntryEntity]]:
        """Decoded entries, oldest first. Undecodable ones are deleted."""
        entries = []
        for key, value in self._durable.items():
            try:
                if value is None:
                    raise ValueError("undecodable value")
                entries.append((key, CacheEntryEntity.from_dict(value)))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Dropping corrupt durable cache entry %r: %s", key, e)
                self._discard(key)
        # Stable sort: equal timestamps keep the backend's insertion order
        entries.sort(key=lambda item: item[1].created_at)
        return entries

    def get(self, key: str) -> CacheEntryEntity | None:
        with self._lock:
            try:
                value = self._durable.read(key)
            except DurableStoreError as e:
                self._record_failure("read", e)
                self._misses += 1
                return None

            entry = None
            if value is not None:
                try:
                    entry = CacheEntryEntity.from_dict(value)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Dropping corrupt durable cache entry %r: %s", key, e)
                    self._discard(key)

            if entry is None or self._expired(entry):
                if entry is not None:
                    self._discard(key)
                self._misses += 1
                return None

            self._hits += 1
            return entry

    def set(self, key: str, entry: CacheEntryEntity) -> None:
        with self._lock:
            try:
                self._durable.write(key, entry.to_dict())
            except DurableStoreError as e:
                self._record_failure("write", e)
                return
            self._writes_since_cleanup += 1
            if self._writes_since_cleanup >= self._cleanup_every:
                self._cleanup_locked()

    def _cleanup_locked(self) -> int:
        self._writes_since_cleanup = 0
        try:
            entries = self._decoded_items()
            removed = 0
            for key, _ in entries[: max(0, len(entries) - self._max_size)]:
                self._durable.delete(key)
                removed += 1
        except DurableStoreError as e:
            self._record_failure("cleanup", e)
            return 0
        if removed:
            logger.debug("Durable cache cleanup removed %d oldest entries", removed)
        return removed

    def cleanup(self) -> int:
        """Remove the oldest entries until the tier is back at ``max_size``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._cleanup_locked()

    def find_similar(
        self,
        question: str,
        threshold: float,
        scope: str | None = None,
        min_token_length: int = 2,
    ) -> tuple[str, CacheEntryEntity] | None:
        """First entry (oldest first) whose question clears the threshold."""
        with self._lock:
            try:
                entries = self._decoded_items()
            except DurableStoreError as e:
                self._record_failure("scan", e)
                return None
            for key, entry in entries:
                if entry.scope != scope or self._expired(entry):
                    continue
                if jaccard_similarity(question, entry.question, min_token_length) >= threshold:
                    return key, entry
            return None

    def delete(self, key: str) -> bool:
        with self._lock:
            try:
                return self._durable.delete(key)
            except DurableStoreError as e:
                self._record_failure("delete", e)
                return False

    def clear(self) -> int:
        with self._lock:
            self._writes_since_cleanup = 0
            try:
                return self._durable.clear()
            except DurableStoreError as e:
                self._record_failure("clear", e)
                return 0

    def size(self) -> int:
        with self._lock:
            try:
                return len(self._durable.items())
            except DurableStoreError as e:
                self._record_failure("count", e)
                return 0

    def health_check(self) -> bool:
        return self._durable.health_check()

    def stats(self) -> dict[str, Any]:
        """Get tier statistics.

        Returns:
            Dictionary with size, capacity, counters, hit rate and failure count
        """
        size = self.size()
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": size,
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total else 0.0,
                "failures": self._failures,
                "ttl_seconds": self._ttl,
            }
