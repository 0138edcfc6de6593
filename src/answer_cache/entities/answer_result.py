"""Answer and history domain entities."""

import time
from dataclasses import dataclass, field

from .cache_hit import CacheSource


@dataclass(frozen=True)
class AnswerResultEntity:
    """Outcome of one answered question, cached or live.

    Cached results always have zero latency, cost and tokens.
    """

    answer: str
    cached: bool
    processing_time_ms: int = 0
    cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    model: str | None = None
    source: CacheSource | None = None


@dataclass(frozen=True)
class HistoryRecordEntity:
    """One question/answer row for the session history."""

    session_id: str | None
    question: str
    answer: str
    processing_time_ms: int
    input_tokens: int
    output_tokens: int
    cost: float
    cached: bool
    created_at: float = field(default_factory=time.time)
