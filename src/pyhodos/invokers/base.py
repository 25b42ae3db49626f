"""
Task Invoker capability interfaces.

Design Pattern: Adapter Pattern
The interpreter only knows these three interfaces. Each external system
(a function platform, a batch job service, a training service...) is
adapted to whichever style matches how it reports completion:

- SyncInvoker: the call returns the output or raises
- PollingInvoker: submit a job, then poll until it reaches a terminal status
- CallbackInvoker: start the work and complete later through a TaskCallback
  (directly, or out of band via send_task_success/send_task_failure)

From Dave Cheney's Practical Go:
"Let functions define the behavior they require" - an invoker implements
one style only, and the task runner picks the protocol by its type.

Invokers receive a private deep copy of the task input and may do whatever
they like with it. Ambient settings (credentials, clients, poll intervals)
belong to the invoker's constructor, never to the definition.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from pyhodos.models import JobStatus

if TYPE_CHECKING:
    from pyhodos.invokers.callback import TaskCallback

__all__ = [
    "JobResult",
    "SyncInvoker",
    "PollingInvoker",
    "CallbackInvoker",
    "Invoker",
]


@dataclass(frozen=True)
class JobResult:
    """
    One observation of an externally executed job.

    Use the named constructors rather than building one by hand:
        JobResult.running()
        JobResult.succeeded({"TrainingJobName": "fraud-2024"})
        JobResult.failed("SageMaker.ResourceLimitExceeded", "no capacity")
    """

    status: JobStatus
    output: Any = None
    error: str | None = None
    cause: str = ""

    @classmethod
    def running(cls) -> JobResult:
        return cls(status=JobStatus.RUNNING)

    @classmethod
    def succeeded(cls, output: Any = None) -> JobResult:
        return cls(status=JobStatus.SUCCEEDED, output=output)

    @classmethod
    def failed(cls, error: str, cause: str = "") -> JobResult:
        return cls(status=JobStatus.FAILED, error=error, cause=cause)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class SyncInvoker(ABC):
    """Work that completes within a single awaited call."""

    @abstractmethod
    async def invoke(self, ref: str, input: Any) -> Any:
        """
        Run the task and return its raw output.

        Args:
            ref: The Task state's resource reference
            input: Private copy of the task input

        Raises:
            InvocationFailure (or any exception): The attempt failed
        """


class PollingInvoker(ABC):
    """
    Long-running work started by submit() and observed by poll().

    The task runner polls every poll_interval seconds until poll() returns a
    terminal JobResult or the state's timeout elapses. cancel() is called at
    most once per submitted job, when the run is cancelled or times out.
    """

    poll_interval: float = 5.0
    """Seconds between polls. Override per instance in the constructor."""

    @abstractmethod
    async def submit(self, ref: str, input: Any) -> Any:
        """Start the job and return an opaque handle for poll()/cancel()."""

    @abstractmethod
    async def poll(self, handle: Any) -> JobResult:
        """Observe the job once."""

    async def cancel(self, handle: Any) -> None:
        """Best-effort request to stop the job. Default: nothing to stop."""
        return None


class CallbackInvoker(ABC):
    """
    Work that reports completion through a TaskCallback.

    invoke_async() should return promptly after starting the work. The
    callback (or its token, sent out of band) may be completed from any
    thread, before or after invoke_async() returns.
    """

    @abstractmethod
    async def invoke_async(self, ref: str, input: Any, callback: TaskCallback) -> None:
        """Start the work, arranging for callback to be completed later."""

    async def cancel(self, token: str) -> None:
        """Best-effort request to stop the work. Default: nothing to stop."""
        return None


Invoker = Union[SyncInvoker, PollingInvoker, CallbackInvoker]
