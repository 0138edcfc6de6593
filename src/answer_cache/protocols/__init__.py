"""Protocol interfaces for swappable implementations.

Protocols use structural typing, so any class with matching methods
satisfies them:
- CacheStore: a bounded key -> entry map (in-process or durable)
- DurableStore: a raw persistent key -> JSON map (Redis, file, ...)
- GenerationProvider: the chat-completion backend
- HistoryRecorder: where answered questions are written
"""

from .cache_store import CacheStore
from .durable_store import DurableStore
from .generation_provider import GenerationProvider
from .history_recorder import HistoryRecorder

__all__ = [
    "CacheStore",
    "DurableStore",
    "GenerationProvider",
    "HistoryRecorder",
]
