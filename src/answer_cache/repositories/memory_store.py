"""In-process bounded LRU store.

This is the fast tier and the cache core. It satisfies the CacheStore
protocol through structural typing.

Recency is kept by an ``OrderedDict``: the first key is the least recently
used, so ties are broken in insertion/access order (FIFO). A single lock
spans lookup, recency update and eviction, so ``get`` and ``set`` are
atomic with respect to each other from threads and coroutines alike. No
method awaits or blocks on I/O while holding it.
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from answer_cache.config import settings
from answer_cache.entities import CacheEntryEntity
from answer_cache.similarity import jaccard_similarity

logger = logging.getLogger(__name__)


class BoundedStore:
    """Fixed-capacity key -> entry map with LRU eviction and optional TTL.

    Example:
        ```python
        store = BoundedStore(max_size=2)
        store.set("a", entry_a)
        store.set("b", entry_b)
        store.set("c", entry_c)  # evicts "a"
        store.get("a")           # None, counted as a miss
        ```
    """

    def __init__(
        self,
        max_size: int,
        ttl: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store.

        Args:
            max_size: Capacity, fixed for the lifetime of the store.
            ttl: Entry lifetime in seconds. None or 0 means entries never expire.
            clock: Returns the current Unix time. Injected for tests.
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._ttl = ttl or None
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntryEntity] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @classmethod
    def create(
        cls,
        max_size: int | None = None,
        ttl: float | None = None,
    ) -> "BoundedStore":
        """Factory method to create BoundedStore from settings.

        Args:
            max_size: Capacity. If None, uses settings.
            ttl: Entry lifetime in seconds. If None, uses settings.

        Returns:
            Configured BoundedStore
        """
        return cls(
            max_size=max_size or settings.cache_max_size,
            ttl=ttl if ttl is not None else settings.cache_ttl_seconds,
        )

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl(self) -> float | None:
        return self._ttl

    def _expired(self, entry: CacheEntryEntity) -> bool:
        return self._ttl is not None and self._clock() - entry.created_at > self._ttl

    def get(self, key: str) -> CacheEntryEntity | None:
        """Look up a key, moving it to most-recently-used on a hit.

        Expired entries are reported as misses but left in place; they are
        dropped by eviction, replacement or ``purge_expired``.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._expired(entry):
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    def peek(self, key: str) -> CacheEntryEntity | None:
        """Read a key without touching counters or recency."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: CacheEntryEntity) -> None:
        """Insert or replace an entry.

        Replacing an existing key moves it to most-recently-used and is not
        an eviction. Inserting a new key into a full store evicts the least
        recently used entry first.
        """
        with self._lock:
            if key in self._entries:
                self._entries[key] = entry
                self._entries.move_to_end(key)
                return
            if len(self._entries) >= self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted LRU cache key %r", evicted)
            self._entries[key] = entry
            assert len(self._entries) <= self._max_size, "bounded store exceeded max_size"

    def find_similar(
        self,
        question: str,
        threshold: float,
        scope: str | None = None,
        min_token_length: int = 2,
    ) -> tuple[str, CacheEntryEntity] | None:
        """Scan entries from least to most recently used and return the first
        whose question is at least ``threshold`` similar.

        The match is moved to most-recently-used. Counters are untouched;
        the exact ``get`` that preceded this scan already counted the miss.
        """
        with self._lock:
            for key, entry in self._entries.items():
                if entry.scope != scope or self._expired(entry):
                    continue
                if jaccard_similarity(question, entry.question, min_token_length) >= threshold:
                    self._entries.move_to_end(key)
                    return key, entry
            return None

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Eagerly drop expired entries. Returns how many were removed."""
        if self._ttl is None:
            return 0
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._expired(entry)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def clear(self) -> int:
        """Remove every entry. Hit/miss counters are kept."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def keys(self) -> list[str]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary with size, capacity, counters and hit rate
        """
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total else 0.0,
                "evictions": self._evictions,
                "ttl_seconds": self._ttl,
            }
