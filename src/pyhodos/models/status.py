"""
Status enums for run, job and event tracking.

Following Dave Cheney's principle: "Make zero values useful"
The default status should represent the initial state.
"""

from enum import Enum


class RunStatus(Enum):
    """
    Status of a single workflow run.

    Lifecycle:
    READY → RUNNING → SUCCEEDED/FAILED

    Design: Simple state machine with clear transitions. A run never
    leaves a terminal status once it has reached one.
    """

    READY = "READY"
    """Run created, control loop not yet started."""

    RUNNING = "RUNNING"
    """Control loop is driving the run."""

    SUCCEEDED = "SUCCEEDED"
    """Run reached a Succeed state (or a Task with end=True)."""

    FAILED = "FAILED"
    """Run reached a Fail state, an unrouted error, or was cancelled.

    Failures carry the error class, cause and failing state name on the
    RunState, not as a separate status per failure kind.
    """

    @property
    def is_terminal(self) -> bool:
        """Check if this status is terminal (no more work needed)."""
        return self in (RunStatus.SUCCEEDED, RunStatus.FAILED)

    def __str__(self) -> str:
        return self.value


class JobStatus(Enum):
    """
    Status of an externally executed long-running job.

    Returned by PollingInvoker.poll() through JobResult.
    """

    RUNNING = "RUNNING"
    """Job accepted and still in progress."""

    SUCCEEDED = "SUCCEEDED"
    """Job finished and produced an output document."""

    FAILED = "FAILED"
    """Job finished with an error class and cause."""

    @property
    def is_terminal(self) -> bool:
        """Check if this status is terminal (polling can stop)."""
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    def __str__(self) -> str:
        return self.value


class EventType(Enum):
    """Kinds of entries in a run's append-only event stream."""

    RUN_STARTED = "RUN_STARTED"
    STATE_ENTERED = "STATE_ENTERED"
    STATE_EXITED = "STATE_EXITED"
    RETRY_SCHEDULED = "RETRY_SCHEDULED"
    ERROR_CAUGHT = "ERROR_CAUGHT"
    RUN_SUCCEEDED = "RUN_SUCCEEDED"
    RUN_FAILED = "RUN_FAILED"

    @property
    def is_terminal(self) -> bool:
        """Check if this event closes the stream for its run."""
        return self in (EventType.RUN_SUCCEEDED, EventType.RUN_FAILED)

    def __str__(self) -> str:
        return self.value
