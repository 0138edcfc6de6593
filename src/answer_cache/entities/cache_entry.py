"""Cache entry domain entity."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a cached answer.

    Entries are immutable. Updating a key replaces the whole entry.

    Attributes:
        answer: The full generated answer text
        question: Normalized question text, used by similarity matching
        created_at: Unix timestamp of insertion, used for TTL and durable cleanup
        scope: Scope discriminator the entry was stored under, if any
        metadata: Opaque payload (token counts, cost, model). Never interpreted.
    """

    answer: str
    question: str
    created_at: float
    scope: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation for durable backends."""
        return {
            "answer": self.answer,
            "question": self.question,
            "created_at": self.created_at,
            "scope": self.scope,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntryEntity":
        """Rebuild an entry from ``to_dict`` output.

        Raises:
            KeyError, TypeError, ValueError: If the payload is malformed
        """
        return cls(
            answer=str(data["answer"]),
            question=str(data["question"]),
            created_at=float(data["created_at"]),
            scope=data.get("scope"),
            metadata=dict(data.get("metadata") or {}),
        )
