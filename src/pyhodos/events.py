"""
Observability sinks for the run event stream.

Every HistoryEvent the interpreter records is also offered to the
configured EventSink. Sinks observe; they never steer. A sink that raises
is logged and ignored, so a broken dashboard cannot fail a training run.
"""

import logging
from typing import Protocol, runtime_checkable

from pyhodos.models import EventType, HistoryEvent

logger = logging.getLogger(__name__)

__all__ = ["EventSink", "LoggingEventSink", "InMemoryEventSink"]


@runtime_checkable
class EventSink(Protocol):
    """Anything with an async emit(event) method."""

    async def emit(self, event: HistoryEvent) -> None: ...


class LoggingEventSink:
    """
    Write each event through the standard logging module.

    Lifecycle events (run started/succeeded/failed) are logged at `level`;
    state-level events one step lower, at DEBUG.
    """

    def __init__(self, logger_name: str = "pyhodos.events", level: int = logging.INFO):
        self._logger = logging.getLogger(logger_name)
        self._level = level

    async def emit(self, event: HistoryEvent) -> None:
        run_level = event.event_type in (
            EventType.RUN_STARTED,
            EventType.RUN_SUCCEEDED,
            EventType.RUN_FAILED,
        )
        level = self._level if run_level else logging.DEBUG
        if event.details:
            self._logger.log(level, f"{event} {event.details}")
        else:
            self._logger.log(level, f"{event}")


class InMemoryEventSink:
    """
    Collect events in a list (for tests and demos).

    Usage:
        sink = InMemoryEventSink()
        engine = Engine(registry).with_event_sink(sink)
        ...
        assert sink.types() == [EventType.RUN_STARTED, ...]
    """

    def __init__(self):
        self.events: list[HistoryEvent] = []

    async def emit(self, event: HistoryEvent) -> None:
        self.events.append(event)

    def for_run(self, run_id: str) -> list[HistoryEvent]:
        return [event for event in self.events if event.run_id == run_id]

    def of_type(self, event_type: EventType) -> list[HistoryEvent]:
        return [event for event in self.events if event.event_type == event_type]

    def types(self, run_id: str | None = None) -> list[EventType]:
        events = self.events if run_id is None else self.for_run(run_id)
        return [event.event_type for event in events]

    def clear(self) -> None:
        self.events.clear()

    def __len__(self) -> int:
        return len(self.events)
