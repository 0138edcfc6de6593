"""In-memory Q&A history.

Keeps the most recent answered questions in a bounded deque and exposes
the aggregates behind the stats endpoint. Satisfies the HistoryRecorder
protocol.
"""

import threading
from collections import deque
from typing import Any

from answer_cache.entities import HistoryRecordEntity


class InMemoryHistoryRecorder:
    """Bounded, process-local history of answered questions."""

    def __init__(self, max_records: int = 1000) -> None:
        self._records: deque[HistoryRecordEntity] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    async def record(self, record: HistoryRecordEntity) -> None:
        with self._lock:
            self._records.append(record)

    def records(self, session_id: str | None = None) -> list[HistoryRecordEntity]:
        """Records oldest first, optionally limited to one session."""
        with self._lock:
            return [r for r in self._records if session_id is None or r.session_id == session_id]

    def summary(self) -> dict[str, Any]:
        """Totals over the retained records.

        ``estimated_cost_saved`` assumes each cached answer would have cost
        as much as the average live answer.
        """
        with self._lock:
            records = list(self._records)
        live = [r for r in records if not r.cached]
        cached = len(records) - len(live)
        total_cost = sum(r.cost for r in live)
        average_cost = total_cost / len(live) if live else 0.0
        return {
            "total_questions": len(records),
            "cached_questions": cached,
            "total_cost": total_cost,
            "estimated_cost_saved": average_cost * cached,
            "avg_processing_time_ms": (
                sum(r.processing_time_ms for r in live) / len(live) if live else 0.0
            ),
        }
