"""
Run execution for pyhodos.

- engine: Engine, start(), execute()
- handle: RunHandle for observing and cancelling runs
- interpreter: the per-run control loop
- task: one Task attempt in any invoker style, with timeouts
- retry: Retry and Catch decisions
- run_state: mutable per-run state
- outcome: Succeeded / Failed
"""

from pyhodos.executor.engine import Engine, execute, start
from pyhodos.executor.handle import RunHandle
from pyhodos.executor.interpreter import EventObserver, Interpreter
from pyhodos.executor.outcome import Failed, RunOutcome, Succeeded, is_failed, is_succeeded
from pyhodos.executor.retry import check_should_retry, error_object, find_catch
from pyhodos.executor.run_state import RunState
from pyhodos.executor.task import CancelHook, TaskRunner

__all__ = [
    "Engine",
    "execute",
    "start",
    "RunHandle",
    "EventObserver",
    "Interpreter",
    "Failed",
    "RunOutcome",
    "Succeeded",
    "is_failed",
    "is_succeeded",
    "check_should_retry",
    "error_object",
    "find_catch",
    "RunState",
    "CancelHook",
    "TaskRunner",
]
