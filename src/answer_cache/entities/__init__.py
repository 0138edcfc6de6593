"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .answer_result import AnswerResultEntity, HistoryRecordEntity
from .cache_entry import CacheEntryEntity
from .cache_hit import CacheHitEntity, CacheSource
from .generation import GenerationChunkEntity, GenerationResultEntity
from .question import QuestionEntity
from .stream_event import ContentEventEntity, DoneEventEntity, StreamEventEntity, UsageEntity

__all__ = [
    "AnswerResultEntity",
    "CacheEntryEntity",
    "CacheHitEntity",
    "CacheSource",
    "ContentEventEntity",
    "DoneEventEntity",
    "GenerationChunkEntity",
    "GenerationResultEntity",
    "HistoryRecordEntity",
    "QuestionEntity",
    "StreamEventEntity",
    "UsageEntity",
]
