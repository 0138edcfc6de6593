"""Incremental delivery events.

A stream is a run of content events closed by exactly one done event. Live
and replayed answers produce the same shapes; only ``cached`` differs.
"""

from dataclasses import dataclass, field
from typing import Literal

from .cache_hit import CacheSource


@dataclass(frozen=True)
class UsageEntity:
    """Usage attached to the done event. All zero for cached answers."""

    input_tokens: int = 0
    output_tokens: int = 0
    processing_time_ms: int = 0
    cost: float = 0.0


@dataclass(frozen=True)
class ContentEventEntity:
    content: str
    type: Literal["content"] = "content"


@dataclass(frozen=True)
class DoneEventEntity:
    full_answer: str
    cached: bool
    usage: UsageEntity = field(default_factory=UsageEntity)
    source: CacheSource | None = None
    type: Literal["done"] = "done"


StreamEventEntity = ContentEventEntity | DoneEventEntity
