"""In-memory run log for pyhodos.

Design Pattern: Adapter Pattern
InMemoryRunLog adapts in-memory dictionaries to the RunLog interface.

Instance is immediately usable after __init__.
"""

from __future__ import annotations

import asyncio
import copy

from pyhodos.models import HistoryEvent, RunRecord, RunStatus
from pyhodos.storage.base import RunLog


class InMemoryRunLog(RunLog):
    """In-memory run log for testing.

    Can be substituted for SqliteRunLog without changing client code.
    Records are copied on the way in and on the way out, so callers can
    never mutate what is stored.

    Usage:
        run_log = InMemoryRunLog()
        engine = Engine(registry).with_run_log(run_log)
    """

    def __init__(self):
        # Storage: {run_id: RunRecord}
        self._runs: dict[str, RunRecord] = {}

        # Storage: {run_id: [HistoryEvent, ...]}
        self._events: dict[str, list[HistoryEvent]] = {}

        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return "InMemoryRunLog"

    async def save_run(self, record: RunRecord) -> None:
        async with self._lock:
            self._runs[record.run_id] = copy.deepcopy(record)

    async def append_event(self, event: HistoryEvent) -> None:
        async with self._lock:
            self._events.setdefault(event.run_id, []).append(event)

    async def get_run(self, run_id: str) -> RunRecord | None:
        async with self._lock:
            record = self._runs.get(run_id)
            return copy.deepcopy(record) if record is not None else None

    async def get_events(self, run_id: str) -> list[HistoryEvent]:
        async with self._lock:
            events = self._events.get(run_id, [])
            return sorted(events, key=lambda event: event.sequence)

    async def list_runs(self, status: RunStatus | None = None) -> list[RunRecord]:
        async with self._lock:
            records = [
                copy.deepcopy(record)
                for record in self._runs.values()
                if status is None or record.status == status
            ]
        return sorted(records, key=lambda record: (record.started_at, record.run_id))

    async def reset(self) -> None:
        async with self._lock:
            self._runs.clear()
            self._events.clear()
