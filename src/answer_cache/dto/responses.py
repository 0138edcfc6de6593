"""Response DTOs for API endpoints.

Wire names are camelCase (``processingTimeMs``, ``fullAnswer``) to match
what interview clients consume.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenUsage(CamelModel):
    """Provider token counts."""

    input: int = Field(0, ge=0)
    output: int = Field(0, ge=0)


class AnswerResponse(CamelModel):
    """Response DTO for a non-streaming answer.

    Cached answers have ``cached=True`` and zero latency, cost and tokens.
    """

    answer: str = Field(..., description="The full answer")
    cached: bool = Field(..., description="Whether the answer came from the cache")
    processing_time_ms: int = Field(0, description="Generation latency in milliseconds", ge=0)
    cost: float = Field(0.0, description="Estimated cost in USD", ge=0.0)
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    model: str | None = Field(None, description="Model that produced the answer")
    source: str | None = Field(None, description="Cache tier that served a cached answer")


class StreamUsage(CamelModel):
    input_tokens: int = 0
    output_tokens: int = 0
    processing_time_ms: int = 0
    cost: float = 0.0


class ContentEvent(CamelModel):
    """One streamed piece of the answer."""

    type: Literal["content"] = "content"
    content: str


class DoneEvent(CamelModel):
    """Terminal event of a successful stream."""

    type: Literal["done"] = "done"
    full_answer: str
    cached: bool
    usage: StreamUsage = Field(default_factory=StreamUsage)
    source: str | None = None


class ErrorEvent(CamelModel):
    """Terminal event of a failed stream."""

    type: Literal["error"] = "error"
    error: str


class TierStats(CamelModel):
    """Statistics of one cache tier.

    ``evictions`` is reported by the in-process tier, ``failures`` by the
    durable tier.
    """

    size: int = Field(..., ge=0)
    max_size: int = Field(..., ge=1)
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0)
    evictions: int | None = Field(None, ge=0)
    failures: int | None = Field(None, ge=0)
    ttl_seconds: float | None = Field(None, description="Entry lifetime, None when entries never expire")


class CacheStatsResponse(CamelModel):
    """Response DTO for cache statistics."""

    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0)
    promotions: int = Field(..., ge=0)
    sources: dict[str, int] = Field(default_factory=dict)
    similarity_enabled: bool
    similarity_threshold: float = Field(..., ge=0.0, le=1.0)
    fast: TierStats
    slow: TierStats | None = None


class ClearCacheResponse(CamelModel):
    success: bool
    deleted_fast: int
    deleted_slow: int
    message: str


class CleanupResponse(CamelModel):
    success: bool
    removed: int


class HealthCheckResponse(CamelModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the durable cache tier is usable")
    generator_healthy: bool | None = Field(
        None,
        description="Whether the chat provider is reachable",
    )
