"""
Mutable state of one run.

A RunState is created per execution and mutated only by the Interpreter
driving it. RunHandle reads it; nothing else writes it.
"""

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pyhodos.definition import Definition
from pyhodos.executor.outcome import Failed, RunOutcome, Succeeded
from pyhodos.models import EventType, HistoryEvent, RunRecord, RunStatus


@dataclass
class RunState:
    """Where a run is, what it carries, and how it ended."""

    run_id: str
    definition: Definition
    input: Any
    """Initial document, kept for the run record."""

    document: Any = None
    """Current document threaded through the states."""

    current_state: str | None = None
    attempt: int = 1
    """Attempt number for current_state. Reset to 1 on every transition."""

    status: RunStatus = RunStatus.READY
    output: Any = None
    error: str | None = None
    cause: str | None = None
    failed_state: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    history: list[HistoryEvent] = field(default_factory=list)

    def __post_init__(self):
        if self.document is None:
            self.document = copy.deepcopy(self.input)
        if self.current_state is None:
            self.current_state = self.definition.start_at

    def record(
        self, event_type: EventType, state_name: str | None = None, **details: Any
    ) -> HistoryEvent:
        """Append an event to the history and return it."""
        event = HistoryEvent(
            run_id=self.run_id,
            sequence=len(self.history),
            event_type=event_type,
            state_name=state_name,
            details=details,
        )
        self.history.append(event)
        return event

    def transition(self, next_state: str) -> None:
        self.current_state = next_state
        self.attempt = 1

    def succeed(self, output: Any) -> None:
        self.status = RunStatus.SUCCEEDED
        self.output = output
        self.finished_at = datetime.now(UTC)

    def fail(self, error: str, cause: str, state_name: str | None) -> None:
        self.status = RunStatus.FAILED
        self.error = error
        self.cause = cause
        self.failed_state = state_name
        self.finished_at = datetime.now(UTC)

    def outcome(self) -> RunOutcome | None:
        """The run's outcome, None while it has not finished."""
        if self.status == RunStatus.SUCCEEDED:
            return Succeeded(self.output)
        if self.status == RunStatus.FAILED:
            return Failed(self.error, self.cause or "", self.failed_state)
        return None

    def to_record(self) -> RunRecord:
        return RunRecord(
            run_id=self.run_id,
            definition_fingerprint=self.definition.fingerprint(),
            status=self.status,
            input=copy.deepcopy(self.input),
            output=copy.deepcopy(self.output),
            error=self.error,
            cause=self.cause,
            failed_state=self.failed_state,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )
