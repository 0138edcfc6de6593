"""Answer Cache - cache-first answer generation for live interviews.

A bounded, key-derived memoization layer in front of a chat-completion
provider: normalized question keys, an in-process LRU tier over a durable
tier, token-overlap matching for near-duplicate questions, and replay of
cached answers through the same stream shape as live generation.

Layers:
    - protocols: Interface contracts (CacheStore, DurableStore, GenerationProvider, HistoryRecorder)
    - repositories: Cache tiers and external adapters
    - services: Tiered cache, stream replayer, generation orchestrator
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from answer_cache.repositories import BoundedStore, OllamaGenerationProvider
    from answer_cache.services import GenerationOrchestrator, TieredCache

    cache = TieredCache.create(fast=BoundedStore.create())
    orchestrator = GenerationOrchestrator.create(cache=cache, provider=OllamaGenerationProvider.create())
    ```

For HTTP API:
    ```python
    from answer_cache.api.app import app
    ```
"""

from answer_cache.config import get_redis_client, settings
from answer_cache.dto import AnswerRequest, AnswerResponse
from answer_cache.entities import CacheEntryEntity, CacheHitEntity, QuestionEntity
from answer_cache.handlers import AnswerHandler
from answer_cache.keys import derive_key, normalize_question
from answer_cache.protocols import CacheStore, DurableStore, GenerationProvider, HistoryRecorder
from answer_cache.repositories import (
    BoundedStore,
    JsonFileDurableStore,
    OllamaGenerationProvider,
    PersistentBoundedStore,
    RedisDurableStore,
)
from answer_cache.services import GenerationOrchestrator, StreamReplayer, TieredCache
from answer_cache.similarity import is_similar, jaccard_similarity

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Key derivation and similarity
    "derive_key",
    "normalize_question",
    "is_similar",
    "jaccard_similarity",
    # Protocols (interfaces)
    "CacheStore",
    "DurableStore",
    "GenerationProvider",
    "HistoryRecorder",
    # Services (business logic)
    "TieredCache",
    "StreamReplayer",
    "GenerationOrchestrator",
    # Handlers (HTTP)
    "AnswerHandler",
    # Repositories (data access)
    "BoundedStore",
    "PersistentBoundedStore",
    "JsonFileDurableStore",
    "RedisDurableStore",
    "OllamaGenerationProvider",
    # Entities (domain models)
    "CacheEntryEntity",
    "CacheHitEntity",
    "QuestionEntity",
    # DTOs (API contracts)
    "AnswerRequest",
    "AnswerResponse",
]
