"""Tests for cache-first answer generation."""

import pytest

from answer_cache.entities import ContentEventEntity, DoneEventEntity, QuestionEntity
from answer_cache.exceptions import GenerationError, GenerationTimeoutError
from answer_cache.repositories import BoundedStore, InMemoryHistoryRecorder
from answer_cache.services import (
    GenerationOrchestrator,
    StreamReplayer,
    TieredCache,
    build_messages,
    estimate_cost,
)


@pytest.fixture
def history():
    return InMemoryHistoryRecorder()


@pytest.fixture
def make_orchestrator(history):
    def _make(provider, **kwargs) -> GenerationOrchestrator:
        cache = kwargs.pop("cache", None) or TieredCache(
            fast=BoundedStore(max_size=10),
            slow=BoundedStore(max_size=50),
            similarity_enabled=kwargs.pop("similarity_enabled", False),
        )
        return GenerationOrchestrator(
            cache=cache,
            provider=provider,
            replayer=StreamReplayer(inter_chunk_delay=0, words_per_chunk=2),
            history=history,
            **kwargs,
        )

    return _make


async def collect(events):
    return [event async for event in events]


@pytest.mark.asyncio
async def test_miss_generates_then_hit_serves_from_cache(provider, make_orchestrator, history):
    orchestrator = make_orchestrator(provider)

    live = await orchestrator.answer(QuestionEntity("What is a window function?", session_id="s1"))
    cached = await orchestrator.answer(QuestionEntity("what is a window function", session_id="s1"))
    await orchestrator.drain()

    assert provider.generate_calls == 1
    assert live.cached is False
    assert live.answer == provider.answer
    assert live.input_tokens == 12
    assert live.output_tokens == 34
    assert live.cost == pytest.approx(estimate_cost(12, 34, 0.15, 0.60))
    assert live.model == "fake-model"

    assert cached.cached is True
    assert cached.answer == live.answer
    assert (cached.processing_time_ms, cached.cost, cached.input_tokens) == (0, 0.0, 0)
    assert cached.source == "memory"

    records = history.records("s1")
    assert [r.cached for r in records] == [False, True]
    assert records[1].cost == 0.0
    assert history.summary()["cached_questions"] == 1


@pytest.mark.asyncio
async def test_generation_failure_leaves_cache_untouched(provider_factory, make_orchestrator):
    provider = provider_factory(fail=GenerationError("provider down"))
    orchestrator = make_orchestrator(provider)

    with pytest.raises(GenerationError):
        await orchestrator.answer(QuestionEntity("What is a window function?"))

    assert orchestrator.cache.fast.size() == 0
    assert orchestrator.cache.slow.size() == 0


@pytest.mark.asyncio
async def test_generation_timeout(provider_factory, make_orchestrator):
    provider = provider_factory(delay=1.0)
    orchestrator = make_orchestrator(provider, timeout=0.05)

    with pytest.raises(GenerationTimeoutError):
        await orchestrator.answer(QuestionEntity("What is a window function?"))

    assert orchestrator.cache.fast.size() == 0


@pytest.mark.asyncio
async def test_empty_answers_are_not_cached(provider_factory, make_orchestrator):
    provider = provider_factory(answer="   ")
    orchestrator = make_orchestrator(provider)

    await orchestrator.answer(QuestionEntity("What is a window function?"))
    await orchestrator.answer(QuestionEntity("What is a window function?"))

    assert provider.generate_calls == 2


@pytest.mark.asyncio
async def test_punctuation_only_questions_bypass_the_cache(provider, make_orchestrator):
    orchestrator = make_orchestrator(provider)

    await orchestrator.answer(QuestionEntity("???"))
    await orchestrator.answer(QuestionEntity("!!!"))

    assert provider.generate_calls == 2
    assert orchestrator.cache.fast.size() == 0


@pytest.mark.asyncio
async def test_job_profile_scope_separates_answers(provider, make_orchestrator):
    orchestrator = make_orchestrator(provider, scope_strategy="job-profile-id")

    await orchestrator.answer(QuestionEntity("Tell me about yourself", job_profile_id="1"))
    await orchestrator.answer(QuestionEntity("Tell me about yourself", job_profile_id="2"))
    again = await orchestrator.answer(QuestionEntity("Tell me about yourself", job_profile_id="1"))

    assert provider.generate_calls == 2
    assert again.cached is True
    assert orchestrator.cache_key(QuestionEntity("Hi", job_profile_id="1"))[0] == "profile:1|hi"


@pytest.mark.asyncio
async def test_similar_question_reuses_answer(provider, make_orchestrator):
    orchestrator = make_orchestrator(provider, similarity_enabled=True)

    await orchestrator.answer(QuestionEntity("Explain the CAP theorem"))
    result = await orchestrator.answer(QuestionEntity("Explain the CAP theorem please"))

    assert provider.generate_calls == 1
    assert result.cached is True
    assert result.source == "memory_similar"


@pytest.mark.asyncio
async def test_stream_live_then_replay(provider, make_orchestrator):
    orchestrator = make_orchestrator(provider)
    question = QuestionEntity("What is a window function?")

    live = await collect(orchestrator.stream_answer(question))
    replayed = await collect(orchestrator.stream_answer(question))

    assert provider.stream_calls == 1
    for events, cached in ((live, False), (replayed, True)):
        content = "".join(e.content for e in events if isinstance(e, ContentEventEntity))
        done = events[-1]
        assert content == provider.answer
        assert isinstance(done, DoneEventEntity)
        assert done.full_answer == provider.answer
        assert done.cached is cached

    assert live[-1].usage.output_tokens == 34
    assert live[-1].usage.cost > 0
    assert replayed[-1].usage.cost == 0.0


@pytest.mark.asyncio
async def test_stream_token_usage_falls_back_to_estimates(provider_factory, make_orchestrator):
    provider = provider_factory(answer="abcd efgh", input_tokens=None, output_tokens=None)
    orchestrator = make_orchestrator(provider)

    events = await collect(orchestrator.stream_answer(QuestionEntity("Explain joins")))

    assert events[-1].usage.output_tokens == 3
    assert events[-1].usage.input_tokens > 0


@pytest.mark.asyncio
async def test_stream_abandoned_midway_is_not_cached(provider, make_orchestrator):
    orchestrator = make_orchestrator(provider)
    question = QuestionEntity("What is a window function?")

    events = orchestrator.stream_answer(question)
    first = await anext(events)
    await events.aclose()

    assert isinstance(first, ContentEventEntity)
    assert orchestrator.cache.fast.size() == 0


@pytest.mark.asyncio
async def test_stream_closed_at_done_event_still_caches(provider, make_orchestrator):
    orchestrator = make_orchestrator(provider)
    question = QuestionEntity("What is a window function?")

    events = orchestrator.stream_answer(question)
    received = []
    while not isinstance(event := await anext(events), DoneEventEntity):
        received.append(event.content)
    await events.aclose()

    assert "".join(received) == provider.answer
    assert orchestrator.cache.fast.size() == 1

    replayed = await orchestrator.answer(question)
    assert replayed.cached is True
    assert provider.stream_calls == 1
    assert provider.generate_calls == 0


@pytest.mark.asyncio
async def test_stream_timeout(provider_factory, make_orchestrator):
    provider = provider_factory(delay=0.5)
    orchestrator = make_orchestrator(provider, timeout=0.05)

    with pytest.raises(GenerationTimeoutError):
        await collect(orchestrator.stream_answer(QuestionEntity("What is a window function?")))

    assert orchestrator.cache.fast.size() == 0


@pytest.mark.asyncio
async def test_stream_provider_failure(provider_factory, make_orchestrator):
    provider = provider_factory(fail=GenerationError("provider down"))
    orchestrator = make_orchestrator(provider)

    with pytest.raises(GenerationError):
        await collect(orchestrator.stream_answer(QuestionEntity("What is a window function?")))

    assert orchestrator.cache.fast.size() == 0


@pytest.mark.asyncio
async def test_history_failures_do_not_fail_requests(provider):
    class BrokenHistory:
        async def record(self, record):
            raise RuntimeError("database locked")

    orchestrator = GenerationOrchestrator(
        cache=TieredCache(fast=BoundedStore(max_size=5)),
        provider=provider,
        history=BrokenHistory(),
    )

    result = await orchestrator.answer(QuestionEntity("What is a window function?"))
    await orchestrator.drain()

    assert result.answer == provider.answer


@pytest.mark.asyncio
async def test_complex_questions_get_a_larger_token_budget(provider, make_orchestrator):
    orchestrator = make_orchestrator(provider, max_tokens=100)

    await orchestrator.answer(QuestionEntity("What is SQL?"))
    await orchestrator.answer(QuestionEntity("How would you design a clickstream pipeline?"))

    assert provider.max_tokens == [100, 200]


def test_build_messages_includes_recent_context_and_profile():
    long_answer = "x" * 200
    question = QuestionEntity(
        "And how does it scale?",
        job_profile="Senior data engineer, Spark and Kafka",
        previous_qas=(
            ("Q0", "dropped"),
            ("Q1", "short"),
            ("Q2", long_answer),
            ("Q3", "also short"),
        ),
    )

    system, user = build_messages(question)

    assert system["role"] == "system"
    assert "Senior data engineer" in system["content"]
    assert "Q0" not in user["content"]
    assert "Q: Q1\nA: short" in user["content"]
    assert f"A: {'x' * 150}..." in user["content"]
    assert user["content"].endswith("Current: And how does it scale?")


def test_build_messages_without_context():
    system, user = build_messages(QuestionEntity("What is SQL?"))
    assert user == {"role": "user", "content": "What is SQL?"}
    assert "job profile" not in system["content"].lower()
