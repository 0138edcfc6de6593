"""History recorder protocol."""

from typing import Protocol, runtime_checkable

from answer_cache.entities import HistoryRecordEntity


@runtime_checkable
class HistoryRecorder(Protocol):
    """Sink for answered questions (the Q&A history).

    Writes are fire-and-forget from the orchestrator's point of view; a
    failing recorder never fails a request.
    """

    async def record(self, record: HistoryRecordEntity) -> None:
        """Persist one history record."""
        ...
