"""Two-tier answer cache.

A small in-process fast tier in front of a larger durable slow tier:

- ``get`` checks the fast tier, then the slow tier. A slow-tier hit is
  promoted into the fast tier (which may evict there) before returning.
- With similarity enabled, an exact miss on both tiers falls back to a
  near-duplicate scan, fast tier first.
- ``set`` writes through to both tiers.

Each tier operation is atomic on its own; no ordering is promised between
concurrent requests beyond that, and the last ``set`` for a key wins.
"""

import logging
import threading
from typing import Any

from answer_cache.config import settings
from answer_cache.entities import CacheEntryEntity, CacheHitEntity, CacheSource
from answer_cache.protocols import CacheStore
from answer_cache.repositories import PersistentBoundedStore

logger = logging.getLogger(__name__)


class TieredCache:
    """Fast tier + optional slow tier with promotion on read.

    Example:
        ```python
        cache = TieredCache(
            fast=BoundedStore(max_size=50),
            slow=PersistentBoundedStore(JsonFileDurableStore("cache.json"), max_size=150),
        )
        cache.set(key, entry)
        hit = cache.get(key, question=normalized)
        ```
    """

    def __init__(
        self,
        fast: CacheStore,
        slow: CacheStore | None = None,
        similarity_enabled: bool = False,
        similarity_threshold: float = 0.75,
        min_token_length: int = 2,
    ) -> None:
        """Initialize the tiered cache.

        Args:
            fast: In-process tier consulted first.
            slow: Durable tier consulted on fast-tier misses. None disables it.
            similarity_enabled: Fall back to near-duplicate matching on exact misses.
            similarity_threshold: Minimum Jaccard similarity for a near-duplicate (0-1).
            min_token_length: Words must be longer than this to count for similarity.
        """
        if not 0 <= similarity_threshold <= 1:
            raise ValueError("similarity_threshold must be between 0 and 1")
        self._fast = fast
        self._slow = slow
        self._similarity_enabled = similarity_enabled
        self._threshold = similarity_threshold
        self._min_token_length = min_token_length
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._promotions = 0
        self._sources: dict[str, int] = {
            "memory": 0,
            "memory_similar": 0,
            "storage": 0,
            "storage_similar": 0,
        }

    @classmethod
    def create(
        cls,
        fast: CacheStore,
        slow: CacheStore | None = None,
    ) -> "TieredCache":
        """Factory method to create TieredCache with similarity settings.

        Args:
            fast: In-process tier (required).
            slow: Durable tier, or None for a single-tier cache.

        Returns:
            Configured TieredCache
        """
        return cls(
            fast=fast,
            slow=slow,
            similarity_enabled=settings.cache_similarity_enabled,
            similarity_threshold=settings.cache_similarity_threshold,
            min_token_length=settings.cache_similarity_min_token_length,
        )

    def _hit(self, key: str, entry: CacheEntryEntity, source: CacheSource) -> CacheHitEntity:
        with self._lock:
            self._hits += 1
            self._sources[source] += 1
        logger.debug("Cache hit (%s) for key %r", source, key)
        return CacheHitEntity(key=key, entry=entry, source=source)

    def _promote(self, key: str, entry: CacheEntryEntity) -> None:
        self._fast.set(key, entry)
        with self._lock:
            self._promotions += 1
        logger.debug("Promoted key %r into the fast tier", key)

    def get(
        self,
        key: str,
        question: str | None = None,
        scope: str | None = None,
    ) -> CacheHitEntity | None:
        """Look a key up across both tiers.

        Args:
            key: Derived cache key
            question: Normalized question text, enables the similarity fallback
            scope: Scope the key was derived with; similar entries must share it

        Returns:
            CacheHitEntity if found, None otherwise
        """
        entry = self._fast.get(key)
        if entry is not None:
            return self._hit(key, entry, "memory")

        if self._slow is not None:
            entry = self._slow.get(key)
            if entry is not None:
                self._promote(key, entry)
                return self._hit(key, entry, "storage")

        if self._similarity_enabled and question:
            match = self._fast.find_similar(question, self._threshold, scope, self._min_token_length)
            if match is not None:
                return self._hit(match[0], match[1], "memory_similar")
            if self._slow is not None:
                match = self._slow.find_similar(
                    question, self._threshold, scope, self._min_token_length
                )
                if match is not None:
                    self._promote(*match)
                    return self._hit(match[0], match[1], "storage_similar")

        with self._lock:
            self._misses += 1
        logger.debug("Cache miss for key %r", key)
        return None

    def set(self, key: str, entry: CacheEntryEntity) -> None:
        """Write an entry through to both tiers."""
        self._fast.set(key, entry)
        if self._slow is not None:
            self._slow.set(key, entry)

    def delete(self, key: str) -> bool:
        removed = self._fast.delete(key)
        if self._slow is not None:
            removed = self._slow.delete(key) or removed
        return removed

    def clear(self) -> dict[str, int]:
        """Remove every entry from both tiers. Counters are kept.

        Returns:
            Number of entries removed per tier
        """
        result = {"fast": self._fast.clear(), "slow": 0}
        if self._slow is not None:
            result["slow"] = self._slow.clear()
        logger.info("Cache cleared: %s", result)
        return result

    def cleanup(self) -> int:
        """Run capacity cleanup on the durable tier now.

        Returns:
            Number of entries removed
        """
        if isinstance(self._slow, PersistentBoundedStore):
            return self._slow.cleanup()
        return 0

    def is_healthy(self) -> bool:
        """True unless the durable tier reports its backend unreachable."""
        if isinstance(self._slow, PersistentBoundedStore):
            return self._slow.health_check()
        return True

    def stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Overall counters plus per-tier stats
        """
        with self._lock:
            total = self._hits + self._misses
            overall: dict[str, Any] = {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total else 0.0,
                "promotions": self._promotions,
                "sources": dict(self._sources),
            }
        overall["similarity_enabled"] = self._similarity_enabled
        overall["similarity_threshold"] = self._threshold
        overall["fast"] = self._fast.stats()
        overall["slow"] = self._slow.stats() if self._slow is not None else None
        return overall

    @property
    def fast(self) -> CacheStore:
        """Get the fast tier (for testing)."""
        return self._fast

    @property
    def slow(self) -> CacheStore | None:
        """Get the slow tier (for testing)."""
        return self._slow

    @property
    def similarity_threshold(self) -> float:
        return self._threshold
