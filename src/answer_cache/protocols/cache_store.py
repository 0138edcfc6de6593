"""Cache store protocol.

Defines the interface shared by both tiers of the tiered cache: a
fixed-capacity key -> entry map with hit/miss accounting.

Implementations:
- BoundedStore (in-process LRU, fast tier)
- PersistentBoundedStore (durable backend, slow tier)
"""

from typing import Any, Protocol, runtime_checkable

from answer_cache.entities import CacheEntryEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for a bounded cache tier.

    Every method completes atomically with respect to the others.
    """

    @property
    def max_size(self) -> int:
        """Capacity fixed at construction."""
        ...

    def get(self, key: str) -> CacheEntryEntity | None:
        """Look up a key, counting a hit or a miss.

        Args:
            key: The derived cache key

        Returns:
            The entry, or None when absent or expired
        """
        ...

    def set(self, key: str, entry: CacheEntryEntity) -> None:
        """Insert or replace an entry, evicting to stay within capacity.

        Args:
            key: The derived cache key
            entry: The entry to store
        """
        ...

    def find_similar(
        self,
        question: str,
        threshold: float,
        scope: str | None = None,
        min_token_length: int = 2,
    ) -> tuple[str, CacheEntryEntity] | None:
        """Return the first stored entry whose question clears the threshold.

        Does not touch the hit/miss counters.

        Args:
            question: Normalized question text
            threshold: Minimum Jaccard similarity
            scope: Only entries stored under this scope are considered
            min_token_length: Tokens must be longer than this to count

        Returns:
            (key, entry) of the first match, or None
        """
        ...

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if something was removed."""
        ...

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        ...

    def size(self) -> int:
        """Number of entries physically stored."""
        ...

    def stats(self) -> dict[str, Any]:
        """Return ``{size, max_size, hits, misses, hit_rate}``."""
        ...
