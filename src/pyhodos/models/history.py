"""
History events recorded for every run.

Design: Value Object
A HistoryEvent is an immutable snapshot of something that happened during
a run. The interpreter appends events to the run's history and forwards the
same events to observability sinks. History is for audit and debugging;
control decisions never read it.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pyhodos.models.status import EventType


@dataclass(frozen=True)
class HistoryEvent:
    """
    One entry in a run's append-only event stream.

    Attributes:
        run_id: Run the event belongs to
        sequence: Position in the run's stream (0-indexed, gap-free)
        event_type: What happened
        state_name: State involved, None for run-level events
        timestamp: When it happened (UTC)
        details: Event-specific payload (input snapshot, error, wait...)
    """

    run_id: str
    sequence: int
    event_type: EventType
    state_name: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (used by the durable run logs)."""
        return {
            "run_id": self.run_id,
            "sequence": self.sequence,
            "event_type": self.event_type.value,
            "state_name": self.state_name,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEvent":
        return cls(
            run_id=data["run_id"],
            sequence=int(data["sequence"]),
            event_type=EventType(data["event_type"]),
            state_name=data.get("state_name"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            details=data.get("details") or {},
        )

    def __str__(self) -> str:
        where = f" state={self.state_name!r}" if self.state_name else ""
        return f"{self.event_type}(run={self.run_id} seq={self.sequence}{where})"
