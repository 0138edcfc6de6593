"""Service layer for business logic.

Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Orchestrator -> TieredCache -> Stores
    (HTTP)  -> (Business)   -> (Caching)   -> (Data Access)
                            -> GenerationProvider
                            -> StreamReplayer
"""

from .orchestrator import GenerationOrchestrator, build_messages, estimate_cost, estimate_tokens
from .stream_replayer import StreamReplayer, chunk_text
from .tiered_cache import TieredCache

__all__ = [
    "GenerationOrchestrator",
    "StreamReplayer",
    "TieredCache",
    "build_messages",
    "chunk_text",
    "estimate_cost",
    "estimate_tokens",
]
