"""Generation provider protocol.

The chat-completion backend is an opaque collaborator: messages in, text
(or a stream of text) out, plus optional token usage.

Implementations raise ``GenerationError`` for any provider failure.
"""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from answer_cache.entities import GenerationChunkEntity, GenerationResultEntity


@runtime_checkable
class GenerationProvider(Protocol):
    """Protocol for chat-completion services."""

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model."""
        ...

    async def generate(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
    ) -> GenerationResultEntity:
        """Generate a complete answer.

        Args:
            messages: Chat messages (``role``/``content`` dicts)
            max_tokens: Completion token cap

        Returns:
            The full answer with usage
        """
        ...

    def stream(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
    ) -> AsyncIterator[GenerationChunkEntity]:
        """Generate an answer incrementally.

        Args:
            messages: Chat messages (``role``/``content`` dicts)
            max_tokens: Completion token cap

        Returns:
            Async iterator of chunks; the last one has ``done=True``
        """
        ...

    async def is_available(self) -> bool:
        """Check if the provider is reachable."""
        ...
