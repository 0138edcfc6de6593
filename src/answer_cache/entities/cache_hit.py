"""Cache hit domain entity."""

from dataclasses import dataclass
from typing import Literal

from .cache_entry import CacheEntryEntity

CacheSource = Literal["memory", "memory_similar", "storage", "storage_similar"]


@dataclass(frozen=True)
class CacheHitEntity:
    """A successful tiered lookup.

    Attributes:
        key: Key the entry is stored under (differs from the requested key on similar hits)
        entry: The cached entry
        source: Which tier and match kind served the hit
    """

    key: str
    entry: CacheEntryEntity
    source: CacheSource

    @property
    def similar(self) -> bool:
        return self.source.endswith("_similar")
