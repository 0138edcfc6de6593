"""Repository layer for data access.

This layer holds the concrete cache tiers and the adapters to external
systems (Redis, the local filesystem, the Ollama chat API) behind the
protocol-based interfaces in ``answer_cache.protocols``.

The repositories are protocol-based (structural typing), not
inheritance-based. Any class implementing the required methods will
satisfy the protocol.
"""

from answer_cache.protocols import CacheStore, DurableStore, GenerationProvider, HistoryRecorder

from .file_store import JsonFileDurableStore
from .history_recorder import InMemoryHistoryRecorder
from .memory_store import BoundedStore
from .ollama_generation_provider import OllamaGenerationProvider
from .persistent_store import PersistentBoundedStore
from .redis_store import RedisDurableStore

__all__ = [
    "CacheStore",
    "DurableStore",
    "GenerationProvider",
    "HistoryRecorder",
    "BoundedStore",
    "PersistentBoundedStore",
    "JsonFileDurableStore",
    "RedisDurableStore",
    "OllamaGenerationProvider",
    "InMemoryHistoryRecorder",
]
