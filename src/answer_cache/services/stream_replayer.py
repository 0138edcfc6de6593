"""Replay of cached answers as a stream.

A cached answer is re-emitted through the same event shapes as a live
generation: content events carrying a few words each, paced by a small
delay, then a done event with ``cached=True`` and zeroed usage. The pacing
is cosmetic and may be zero.

Chunks keep the whitespace that follows each word, so joining every
content event reproduces the cached text exactly. Total replay time is at
most ``len(chunks) * inter_chunk_delay``.
"""

import asyncio
import re
from collections.abc import AsyncIterator, Awaitable, Callable

from answer_cache.config import settings
from answer_cache.entities import (
    CacheSource,
    ContentEventEntity,
    DoneEventEntity,
    StreamEventEntity,
    UsageEntity,
)

_WORD_WITH_TRAILING_SPACE = re.compile(r"\S+\s*")
_LEADING_SPACE = re.compile(r"\s*")


def chunk_text(text: str, words_per_chunk: int = 3) -> list[str]:
    """Split text into chunks of ``words_per_chunk`` words.

    Leading whitespace is attached to the first chunk and each word keeps
    its trailing whitespace, so ``"".join(chunk_text(t)) == t``.
    """
    if words_per_chunk < 1:
        raise ValueError("words_per_chunk must be at least 1")
    words = _WORD_WITH_TRAILING_SPACE.findall(text)
    if not words:
        return [text] if text else []
    leading = _LEADING_SPACE.match(text).group()  # type: ignore[union-attr]
    words[0] = leading + words[0]
    return ["".join(words[i : i + words_per_chunk]) for i in range(0, len(words), words_per_chunk)]


class StreamReplayer:
    """Re-emits cached answers with live-like pacing."""

    def __init__(
        self,
        inter_chunk_delay: float = 0.03,
        words_per_chunk: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the replayer.

        Args:
            inter_chunk_delay: Seconds between content events. 0 disables pacing.
            words_per_chunk: Words per content event.
            sleep: Awaitable sleep, injected for tests.
        """
        if words_per_chunk < 1:
            raise ValueError("words_per_chunk must be at least 1")
        self._delay = max(0.0, inter_chunk_delay)
        self._words_per_chunk = words_per_chunk
        self._sleep = sleep

    @classmethod
    def create(cls) -> "StreamReplayer":
        """Factory method to create StreamReplayer from settings."""
        return cls(
            inter_chunk_delay=settings.replay_inter_chunk_delay,
            words_per_chunk=settings.replay_words_per_chunk,
        )

    @property
    def inter_chunk_delay(self) -> float:
        return self._delay

    def max_duration(self, answer: str) -> float:
        """Upper bound on how long replaying ``answer`` takes, in seconds."""
        return len(chunk_text(answer, self._words_per_chunk)) * self._delay

    async def replay(
        self,
        answer: str,
        source: CacheSource | None = None,
    ) -> AsyncIterator[StreamEventEntity]:
        """Yield content events for ``answer`` followed by a cached done event."""
        for index, chunk in enumerate(chunk_text(answer, self._words_per_chunk)):
            if index and self._delay:
                await self._sleep(self._delay)
            yield ContentEventEntity(content=chunk)
        yield DoneEventEntity(full_answer=answer, cached=True, usage=UsageEntity(), source=source)
