"""Persisted summary of one workflow run.

Run logs store a RunRecord when a run starts and overwrite it when the
run reaches a terminal status, so partial progress survives a fatal
failure for postmortem.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pyhodos.models.status import RunStatus


@dataclass
class RunRecord:
    """Run summary as stored by a RunLog.

    Design: Value Object
        Represents a snapshot of run state with everything a postmortem
        needs except the event stream (stored separately).
    """

    run_id: str
    """Unique identifier for this run (uuid7 string, time ordered)."""

    definition_fingerprint: str
    """xxhash64 digest of the Definition that drove the run."""

    status: RunStatus
    """Current run status."""

    input: Any = None
    """Initial document."""

    output: Any = None
    """Final document for SUCCEEDED runs, None otherwise."""

    error: str | None = None
    """Error class for FAILED runs."""

    cause: str | None = None
    """Human-readable failure cause for FAILED runs."""

    failed_state: str | None = None
    """Name of the state that failed, None when the run did not fail in a state."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    """When the run started."""

    finished_at: datetime | None = None
    """When the run reached a terminal status, None while running."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "definition_fingerprint": self.definition_fingerprint,
            "status": self.status.value,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "cause": self.cause,
            "failed_state": self.failed_state,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunRecord":
        finished_at = data.get("finished_at")
        return cls(
            run_id=data["run_id"],
            definition_fingerprint=data["definition_fingerprint"],
            status=RunStatus(data["status"]),
            input=data.get("input"),
            output=data.get("output"),
            error=data.get("error"),
            cause=data.get("cause"),
            failed_state=data.get("failed_state"),
            started_at=datetime.fromisoformat(data["started_at"]),
            finished_at=datetime.fromisoformat(finished_at) if finished_at else None,
        )
