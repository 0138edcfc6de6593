"""Generation provider domain entities."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationResultEntity:
    """A complete (blocking) generation.

    Token counts are provider-reported; None when the provider reports none.
    """

    text: str
    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None


@dataclass(frozen=True)
class GenerationChunkEntity:
    """One increment of a streamed generation.

    The final chunk has ``done=True`` and may carry usage counts.
    """

    content: str
    done: bool = False
    input_tokens: int | None = None
    output_tokens: int | None = None
