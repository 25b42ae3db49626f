"""
Task invokers: how Task states reach external work.

- base: SyncInvoker, PollingInvoker, CallbackInvoker and JobResult
- callback: TaskCallback tokens and out-of-band completion
- function: FunctionInvoker for plain callables
- registry: InvokerRegistry resolving resource references
"""

from pyhodos.invokers.base import CallbackInvoker, Invoker, JobResult, PollingInvoker, SyncInvoker
from pyhodos.invokers.callback import (
    TaskCallback,
    pending_tokens,
    send_task_failure,
    send_task_success,
)
from pyhodos.invokers.function import FunctionInvoker
from pyhodos.invokers.registry import InvokerRegistry

__all__ = [
    "CallbackInvoker",
    "Invoker",
    "JobResult",
    "PollingInvoker",
    "SyncInvoker",
    "TaskCallback",
    "pending_tokens",
    "send_task_failure",
    "send_task_success",
    "FunctionInvoker",
    "InvokerRegistry",
]
