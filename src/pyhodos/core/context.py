"""Task-local run context for invokers.

Provides RunContext so that invokers can learn which run, state and
attempt they are serving without threading it through the invoker
interface. Uses contextvars for task-local storage, allowing many runs to
execute concurrently without interference.

Design: Task-Local State (contextvars)
    Each run executes in its own asyncio task, so each has its own
    RunContext. The interpreter sets it around every invocation.
"""

from contextvars import ContextVar
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class RunContext:
    """What an invoker may know about the invocation it is serving.

    Attributes:
        run_id: Run being executed
        state_name: Task state being invoked
        attempt: Attempt number for this state (1-indexed)
    """

    run_id: str
    state_name: str | None = None
    attempt: int = 1

    def for_attempt(self, state_name: str, attempt: int) -> "RunContext":
        return replace(self, state_name=state_name, attempt=attempt)


RUN_CONTEXT: ContextVar[RunContext | None] = ContextVar("run_context", default=None)
"""Task-local RunContext for the run currently executing.

Usage:
    ```python
    token = RUN_CONTEXT.set(RunContext(run_id, "Train model", 1))
    try:
        ctx = RUN_CONTEXT.get()
    finally:
        RUN_CONTEXT.reset(token)
    ```
"""


def get_current_run() -> RunContext | None:
    """Return the RunContext of the calling task, None outside a run."""
    return RUN_CONTEXT.get()
