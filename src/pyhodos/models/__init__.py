"""Core data models for workflow definitions and runs.

Defines value types for states, retry/catch/choice rules, run and job
statuses, history events and persisted run records.

Design: Dependency-Free Models
These types have no runtime dependencies on core, executor or storage
modules to prevent circular imports and enable clean layering.
"""

from pyhodos.models.choice import ChoiceRule, Comparator
from pyhodos.models.history import HistoryEvent
from pyhodos.models.retry import CatchRule, RetryRule
from pyhodos.models.run_record import RunRecord
from pyhodos.models.states import (
    DISCARD,
    ChoiceState,
    FailState,
    State,
    SucceedState,
    TaskState,
)
from pyhodos.models.status import EventType, JobStatus, RunStatus

__all__ = [
    "ChoiceRule",
    "Comparator",
    "HistoryEvent",
    "RetryRule",
    "CatchRule",
    "RunRecord",
    "DISCARD",
    "TaskState",
    "ChoiceState",
    "FailState",
    "SucceedState",
    "State",
    "EventType",
    "JobStatus",
    "RunStatus",
]
