"""
RunLog protocol - Abstract interface for run log backends.

Design Pattern: Adapter Pattern
RunLog defines the target interface that every persistence backend
implements. Different backends (SQLite, Redis, Memory) adapt to this
common interface.

Design Principle: Dependency Inversion (SOLID)
The Engine depends on this abstraction, not on concrete backends.

From Dave Cheney's Practical Go:
"Let functions define the behavior they require" - the Engine only needs
RunLog, not SqliteRunLog. This allows easy testing with InMemoryRunLog.

What is stored:
- one RunRecord per run, written when the run starts and overwritten when
  it reaches a terminal status
- the run's append-only event stream, in sequence order

The run log is an audit trail. Nothing reads it back to drive a run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pyhodos.core.errors import StorageError
from pyhodos.models import HistoryEvent, RunRecord, RunStatus

__all__ = ["RunLog", "StorageError"]


class RunLog(ABC):
    """
    Abstract persistence interface for run records and event streams.

    From Dave Cheney:
    "Design APIs that are hard to misuse" - each method has one clear
    purpose, and absence is reported with None or an empty list rather than
    an exception.
    """

    @abstractmethod
    async def save_run(self, record: RunRecord) -> None:
        """
        Insert or replace the record for record.run_id.

        Raises:
            StorageError: If the backend operation fails
        """

    @abstractmethod
    async def append_event(self, event: HistoryEvent) -> None:
        """
        Append one event to its run's stream.

        Raises:
            StorageError: If the backend operation fails
        """

    @abstractmethod
    async def get_run(self, run_id: str) -> RunRecord | None:
        """Return the stored record, or None if the run is unknown."""

    @abstractmethod
    async def get_events(self, run_id: str) -> list[HistoryEvent]:
        """Return the run's events ordered by sequence (empty if unknown)."""

    @abstractmethod
    async def list_runs(self, status: RunStatus | None = None) -> list[RunRecord]:
        """
        Return stored records, oldest first.

        Args:
            status: Only return runs with this status, all runs when None
        """

    @abstractmethod
    async def reset(self) -> None:
        """Clear all data (for testing/demos). The log stays usable."""

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
        return None
