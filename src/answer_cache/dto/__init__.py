"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import AnswerRequest, PreviousQA
from .responses import (
    AnswerResponse,
    CacheStatsResponse,
    CleanupResponse,
    ClearCacheResponse,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    HealthCheckResponse,
    StreamUsage,
    TierStats,
    TokenUsage,
)

__all__ = [
    "AnswerRequest",
    "PreviousQA",
    "AnswerResponse",
    "TokenUsage",
    "StreamUsage",
    "ContentEvent",
    "DoneEvent",
    "ErrorEvent",
    "TierStats",
    "CacheStatsResponse",
    "ClearCacheResponse",
    "CleanupResponse",
    "HealthCheckResponse",
]
