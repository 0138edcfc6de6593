"""HTTP handlers for answering and cache operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, server-sent events and
error mapping.
"""

from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from answer_cache.dto import (
    AnswerRequest,
    AnswerResponse,
    CacheStatsResponse,
    CleanupResponse,
    ClearCacheResponse,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    HealthCheckResponse,
    StreamUsage,
    TokenUsage,
)
from answer_cache.entities import ContentEventEntity, QuestionEntity, StreamEventEntity
from answer_cache.exceptions import GenerationError, GenerationTimeoutError
from answer_cache.protocols import GenerationProvider
from answer_cache.repositories import InMemoryHistoryRecorder
from answer_cache.services import GenerationOrchestrator, TieredCache

STREAM_END = "data: [DONE]\n\n"


def sse(event: BaseModel) -> str:
    """Format one DTO as a server-sent event."""
    return f"data: {event.model_dump_json(by_alias=True)}\n\n"


def to_question(request: AnswerRequest) -> QuestionEntity:
    return QuestionEntity(
        question=request.question,
        session_id=str(request.session_id) if request.session_id is not None else None,
        job_profile_id=str(request.job_profile_id) if request.job_profile_id is not None else None,
        job_profile=request.job_profile,
        previous_qas=tuple((qa.question, qa.answer) for qa in request.previous_qas),
    )


def to_event_dto(event: StreamEventEntity) -> ContentEvent | DoneEvent:
    if isinstance(event, ContentEventEntity):
        return ContentEvent(content=event.content)
    return DoneEvent(
        full_answer=event.full_answer,
        cached=event.cached,
        usage=StreamUsage(
            input_tokens=event.usage.input_tokens,
            output_tokens=event.usage.output_tokens,
            processing_time_ms=event.usage.processing_time_ms,
            cost=event.usage.cost,
        ),
        source=event.source,
    )


class AnswerHandler:
    """HTTP handlers for the answer endpoint and cache operations.

    Example:
        ```python
        handler = AnswerHandler(orchestrator=orchestrator, cache=cache)

        @app.post("/api/ai/answer")
        async def answer(request: AnswerRequest):
            return await handler.answer(request)
        ```
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        cache: TieredCache,
        provider: GenerationProvider | None = None,
        history: InMemoryHistoryRecorder | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            orchestrator: Answers questions (required).
            cache: The tiered cache, for stats and operator actions (required).
            provider: Chat provider, probed by the health check.
            history: History sink, summarized by the stats endpoint.
        """
        self._orchestrator = orchestrator
        self._cache = cache
        self._provider = provider
        self._history = history

    async def answer(self, request: AnswerRequest) -> AnswerResponse | StreamingResponse:
        """Handle POST /api/ai/answer requests.

        Raises:
            HTTPException: 504 on generation timeout, 502 on other provider failures
        """
        question = to_question(request)
        if request.stream:
            return StreamingResponse(
                self._stream(question),
                media_type="text/event-stream",
                headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
            )

        try:
            result = await self._orchestrator.answer(question)
        except GenerationTimeoutError as e:
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail=str(e),
            ) from e
        except GenerationError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to generate answer: {e}",
            ) from e

        return AnswerResponse(
            answer=result.answer,
            cached=result.cached,
            processing_time_ms=result.processing_time_ms,
            cost=result.cost,
            tokens=TokenUsage(input=result.input_tokens, output=result.output_tokens),
            model=result.model,
            source=result.source,
        )

    async def _stream(self, question: QuestionEntity) -> AsyncIterator[str]:
        try:
            async with aclosing(self._orchestrator.stream_answer(question)) as events:
                async for event in events:
                    yield sse(to_event_dto(event))
        except GenerationError as e:
            yield sse(ErrorEvent(error=str(e)))
        yield STREAM_END

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests."""
        return CacheStatsResponse.model_validate(self._cache.stats())

    async def get_summary(self) -> dict:
        """Handle GET /stats requests: cache stats plus history totals."""
        return {
            "cache": self._cache.stats(),
            "history": self._history.summary() if self._history is not None else None,
        }

    async def clear_cache(self) -> ClearCacheResponse:
        """Handle DELETE /cache requests."""
        removed = self._cache.clear()
        return ClearCacheResponse(
            success=True,
            deleted_fast=removed["fast"],
            deleted_slow=removed["slow"],
            message="Cache cleared successfully",
        )

    async def cleanup_cache(self) -> CleanupResponse:
        """Handle POST /cache/cleanup requests."""
        return CleanupResponse(success=True, removed=self._cache.cleanup())

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        cache_healthy = self._cache.is_healthy()
        generator_healthy = (
            await self._provider.is_available() if self._provider is not None else None
        )
        healthy = cache_healthy and generator_healthy is not False
        return HealthCheckResponse(
            status="healthy" if healthy else "unhealthy",
            cache_healthy=cache_healthy,
            generator_healthy=generator_healthy,
        )
