"""Shared fixtures: a controllable clock and a fake chat provider."""

import asyncio
import re

import pytest

from answer_cache.entities import CacheEntryEntity, GenerationChunkEntity, GenerationResultEntity


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """In-process GenerationProvider with call accounting."""

    def __init__(
        self,
        answer: str = "A window function computes a value over a set of related rows.",
        fail: Exception | None = None,
        delay: float = 0.0,
        input_tokens: int | None = 12,
        output_tokens: int | None = 34,
    ) -> None:
        self.answer = answer
        self.fail = fail
        self.delay = delay
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.generate_calls = 0
        self.stream_calls = 0
        self.messages: list[list[dict[str, str]]] = []
        self.max_tokens: list[int | None] = []

    @property
    def model_name(self) -> str:
        return "fake-model"

    async def generate(self, messages, max_tokens=None):
        self.generate_calls += 1
        self.messages.append(messages)
        self.max_tokens.append(max_tokens)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail is not None:
            raise self.fail
        return GenerationResultEntity(
            text=self.answer,
            model=self.model_name,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )

    async def stream(self, messages, max_tokens=None):
        self.stream_calls += 1
        self.messages.append(messages)
        self.max_tokens.append(max_tokens)
        if self.fail is not None:
            raise self.fail
        for piece in re.findall(r"\S+\s*", self.answer):
            if self.delay:
                await asyncio.sleep(self.delay)
            yield GenerationChunkEntity(content=piece)
        yield GenerationChunkEntity(
            content="",
            done=True,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )

    async def is_available(self) -> bool:
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def make_entry(clock):
    """Build cache entries stamped with the fake clock."""

    def _make(
        answer: str = "cached answer",
        question: str = "what is a window function",
        created_at: float | None = None,
        scope: str | None = None,
    ) -> CacheEntryEntity:
        return CacheEntryEntity(
            answer=answer,
            question=question,
            created_at=clock() if created_at is None else created_at,
            scope=scope,
            metadata={"model": "fake-model", "output_tokens": 34},
        )

    return _make
