"""Answer generation orchestrator.

The call site between requests, the cache and the chat provider:

1. derive the key for the question (and its scope)
2. look it up (exact, then similarity if enabled)
3. hit: return or replay the cached answer with zero cost/latency
4. miss: call the provider once under a timeout, store the full answer,
   return it with measured latency and cost

Every answered request also writes a history record, fire-and-forget.
Failed or empty generations never reach the cache.

Concurrent identical requests are not coalesced: each generates and the
last ``set`` wins. At-most-once generation would need an in-flight map
(key -> pending future) consulted before calling the provider.
"""

import asyncio
import logging
import math
import time
from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing
from typing import Any

from answer_cache.config import settings
from answer_cache.entities import (
    AnswerResultEntity,
    CacheEntryEntity,
    CacheHitEntity,
    ContentEventEntity,
    DoneEventEntity,
    GenerationChunkEntity,
    HistoryRecordEntity,
    QuestionEntity,
    StreamEventEntity,
    UsageEntity,
)
from answer_cache.exceptions import GenerationError, GenerationTimeoutError
from answer_cache.keys import derive_key, normalize_question, scope_for
from answer_cache.protocols import GenerationProvider, HistoryRecorder

from .stream_replayer import StreamReplayer
from .tiered_cache import TieredCache

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a senior technical interview co-pilot. Answer in ENGLISH.

Rules:
1. Be DIRECT and CONCISE - this is a live interview
2. Start with the core answer, details only if needed
3. Code examples: short and practical
4. Mention trade-offs when relevant
5. No greetings/fluff - get to the point
6. Use markdown for readability
7. For system design: requirements → architecture → components → trade-offs"""

CONTEXT_TURNS = 3
CONTEXT_ANSWER_CHARS = 150
COMPLEX_QUESTION_CHARS = 100
COMPLEX_KEYWORDS = ("design", "architecture")

_END = object()


def estimate_tokens(text: str) -> int:
    """Rough token count (4 characters per token)."""
    return math.ceil(len(text) / 4) if text else 0


def estimate_cost(
    input_tokens: int,
    output_tokens: int,
    price_input_per_million: float,
    price_output_per_million: float,
) -> float:
    """Cost in USD from token counts and per-million prices."""
    return (input_tokens * price_input_per_million + output_tokens * price_output_per_million) / 1_000_000


def is_complex(question: str) -> bool:
    lowered = question.lower()
    return len(question) > COMPLEX_QUESTION_CHARS or any(k in lowered for k in COMPLEX_KEYWORDS)


def build_messages(question: QuestionEntity) -> list[dict[str, str]]:
    """Chat messages for a question: system prompt, then recent turns and the question."""
    system = SYSTEM_PROMPT
    if question.job_profile:
        system += f"\n\nCandidate job profile:\n{question.job_profile.strip()}"

    user_content = question.question
    if question.previous_qas:
        turns = []
        for previous_q, previous_a in question.previous_qas[-CONTEXT_TURNS:]:
            answer = previous_a[:CONTEXT_ANSWER_CHARS]
            if len(previous_a) > CONTEXT_ANSWER_CHARS:
                answer += "..."
            turns.append(f"Q: {previous_q}\nA: {answer}")
        context = "\n\n".join(turns)
        user_content = f"Previous context:\n{context}\n\nCurrent: {question.question}"

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user_content},
    ]


async def _next_chunk(iterator: AsyncIterator[GenerationChunkEntity]) -> Any:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _END


class GenerationOrchestrator:
    """Cache-first answering of interview questions.

    Example:
        ```python
        orchestrator = GenerationOrchestrator.create(cache=cache, provider=provider)

        result = await orchestrator.answer(QuestionEntity("What is a window function?"))

        async for event in orchestrator.stream_answer(QuestionEntity("Explain CAP")):
            ...
        ```
    """

    def __init__(
        self,
        cache: TieredCache,
        provider: GenerationProvider,
        replayer: StreamReplayer | None = None,
        history: HistoryRecorder | None = None,
        scope_strategy: str = "none",
        scope_turns: int = 3,
        key_max_length: int | None = 200,
        stop_words: Iterable[str] = (),
        timeout: float = 60.0,
        max_tokens: int = 1024,
        price_input_per_million: float = 0.15,
        price_output_per_million: float = 0.60,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            cache: The tiered answer cache (required).
            provider: Chat-completion provider (required).
            replayer: Replays cached answers on streaming requests.
            history: Receives one record per answered request.
            scope_strategy: ``none``, ``job-profile-id`` or ``recent-turns-hash``.
            scope_turns: Turns hashed by the recent-turns strategy.
            key_max_length: Normalized question truncation length.
            stop_words: Words dropped during normalization.
            timeout: Seconds a single generation may take.
            max_tokens: Completion cap, doubled for complex questions.
            price_input_per_million: USD per 1M input tokens.
            price_output_per_million: USD per 1M output tokens.
        """
        self._cache = cache
        self._provider = provider
        self._replayer = replayer or StreamReplayer(inter_chunk_delay=0)
        self._history = history
        self._scope_strategy = scope_strategy
        self._scope_turns = scope_turns
        self._key_max_length = key_max_length
        self._stop_words = tuple(stop_words)
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._price_input = price_input_per_million
        self._price_output = price_output_per_million
        self._pending: set[asyncio.Task[None]] = set()

    @classmethod
    def create(
        cls,
        cache: TieredCache,
        provider: GenerationProvider,
        replayer: StreamReplayer | None = None,
        history: HistoryRecorder | None = None,
    ) -> "GenerationOrchestrator":
        """Factory method to create GenerationOrchestrator from settings.

        Args:
            cache: The tiered answer cache (required).
            provider: Chat-completion provider (required).
            replayer: Stream replayer. If None, built from settings.
            history: History sink, or None to skip history.

        Returns:
            Configured GenerationOrchestrator
        """
        return cls(
            cache=cache,
            provider=provider,
            replayer=replayer or StreamReplayer.create(),
            history=history,
            scope_strategy=settings.cache_scope_strategy,
            scope_turns=settings.cache_scope_recent_turns,
            key_max_length=settings.cache_key_max_length,
            stop_words=settings.cache_stop_words,
            timeout=settings.generation_timeout,
            max_tokens=settings.generation_max_tokens,
            price_input_per_million=settings.price_input_per_million,
            price_output_per_million=settings.price_output_per_million,
        )

    def cache_key(self, question: QuestionEntity) -> tuple[str, str, str | None]:
        """Derive (key, normalized question, scope) for a question."""
        scope = scope_for(
            self._scope_strategy,
            job_profile_id=question.job_profile_id,
            previous_questions=question.previous_questions,
            turns=self._scope_turns,
        )
        normalized = normalize_question(
            question.question, max_length=self._key_max_length, stop_words=self._stop_words
        )
        key = derive_key(
            question.question,
            scope=scope,
            max_length=self._key_max_length,
            stop_words=self._stop_words,
        )
        return key, normalized, scope

    def _lookup(self, key: str, normalized: str, scope: str | None) -> CacheHitEntity | None:
        if not normalized:
            # Nothing left after normalization: every such question would share one key
            return None
        return self._cache.get(key, question=normalized, scope=scope)

    def _max_tokens_for(self, question: QuestionEntity) -> int:
        return self._max_tokens * 2 if is_complex(question.question) else self._max_tokens

    def _store(
        self,
        key: str,
        normalized: str,
        scope: str | None,
        result: AnswerResultEntity,
    ) -> None:
        if not normalized or not result.answer.strip():
            return
        self._cache.set(
            key,
            CacheEntryEntity(
                answer=result.answer,
                question=normalized,
                created_at=time.time(),
                scope=scope,
                metadata={
                    "model": result.model,
                    "input_tokens": result.input_tokens,
                    "output_tokens": result.output_tokens,
                    "cost": result.cost,
                    "processing_time_ms": result.processing_time_ms,
                },
            ),
        )

    def _cached_result(self, hit: CacheHitEntity) -> AnswerResultEntity:
        return AnswerResultEntity(
            answer=hit.entry.answer,
            cached=True,
            model=hit.entry.metadata.get("model"),
            source=hit.source,
        )

    def _live_result(
        self,
        answer: str,
        model: str,
        started: float,
        messages: list[dict[str, str]],
        input_tokens: int | None,
        output_tokens: int | None,
    ) -> AnswerResultEntity:
        tokens_in = input_tokens or estimate_tokens("".join(m["content"] for m in messages))
        tokens_out = output_tokens or estimate_tokens(answer)
        return AnswerResultEntity(
            answer=answer,
            cached=False,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            cost=estimate_cost(tokens_in, tokens_out, self._price_input, self._price_output),
            input_tokens=tokens_in,
            output_tokens=tokens_out,
            model=model,
        )

    def _record_history(self, question: QuestionEntity, result: AnswerResultEntity) -> None:
        if self._history is None:
            return
        record = HistoryRecordEntity(
            session_id=question.session_id,
            question=question.question,
            answer=result.answer,
            processing_time_ms=result.processing_time_ms,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            cost=result.cost,
            cached=result.cached,
        )
        task = asyncio.create_task(self._write_history(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_history(self, record: HistoryRecordEntity) -> None:
        assert self._history is not None
        try:
            await self._history.record(record)
        except Exception:
            logger.warning("History write failed for session %s", record.session_id, exc_info=True)

    async def drain(self) -> None:
        """Wait for pending history writes (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def answer(self, question: QuestionEntity) -> AnswerResultEntity:
        """Answer a question, from cache when possible.

        Raises:
            GenerationTimeoutError: If the provider exceeds the timeout
            GenerationError: If the provider fails
        """
        key, normalized, scope = self.cache_key(question)
        hit = self._lookup(key, normalized, scope)
        if hit is not None:
            result = self._cached_result(hit)
            self._record_history(question, result)
            return result

        messages = build_messages(question)
        started = time.perf_counter()
        try:
            generation = await asyncio.wait_for(
                self._provider.generate(messages, self._max_tokens_for(question)),
                self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Generation timed out after %.1fs", self._timeout)
            raise GenerationTimeoutError(self._timeout) from e
        except GenerationError as e:
            logger.error("Generation failed: %s", e)
            raise

        result = self._live_result(
            generation.text,
            generation.model,
            started,
            messages,
            generation.input_tokens,
            generation.output_tokens,
        )
        self._store(key, normalized, scope, result)
        self._record_history(question, result)
        return result

    async def _bounded(
        self,
        chunks: AsyncIterator[GenerationChunkEntity],
    ) -> AsyncIterator[GenerationChunkEntity]:
        """Re-yield provider chunks until an overall deadline passes."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise GenerationTimeoutError(self._timeout)
                try:
                    chunk = await asyncio.wait_for(_next_chunk(chunks), remaining)
                except asyncio.TimeoutError as e:
                    raise GenerationTimeoutError(self._timeout) from e
                if chunk is _END:
                    return
                yield chunk
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

    async def stream_answer(self, question: QuestionEntity) -> AsyncIterator[StreamEventEntity]:
        """Answer a question as a stream of events.

        Cached answers are replayed; live answers are forwarded chunk by
        chunk. Both end with a done event. If the consumer stops early no
        further events are produced and a partial live answer is not cached.

        Raises:
            GenerationTimeoutError: If the provider exceeds the timeout
            GenerationError: If the provider fails
        """
        key, normalized, scope = self.cache_key(question)
        hit = self._lookup(key, normalized, scope)
        if hit is not None:
            self._record_history(question, self._cached_result(hit))
            async with aclosing(self._replayer.replay(hit.entry.answer, source=hit.source)) as events:
                async for event in events:
                    yield event
            return

        messages = build_messages(question)
        started = time.perf_counter()
        parts: list[str] = []
        input_tokens: int | None = None
        output_tokens: int | None = None
        provider_stream = self._provider.stream(messages, self._max_tokens_for(question))
        try:
            async with aclosing(self._bounded(provider_stream)) as chunks:
                async for chunk in chunks:
                    if chunk.done:
                        input_tokens = chunk.input_tokens
                        output_tokens = chunk.output_tokens
                    if chunk.content:
                        parts.append(chunk.content)
                        yield ContentEventEntity(content=chunk.content)
        except GenerationError as e:
            logger.error("Streaming generation failed: %s", e)
            raise

        result = self._live_result(
            "".join(parts),
            self._provider.model_name,
            started,
            messages,
            input_tokens,
            output_tokens,
        )
        self._store(key, normalized, scope, result)
        self._record_history(question, result)
        yield DoneEventEntity(
            full_answer=result.answer,
            cached=False,
            usage=UsageEntity(
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                processing_time_ms=result.processing_time_ms,
                cost=result.cost,
            ),
        )

    @property
    def cache(self) -> TieredCache:
        """Get the underlying cache (for testing)."""
        return self._cache

    @property
    def provider(self) -> GenerationProvider:
        """Get the underlying provider (for testing)."""
        return self._provider
