"""
Core building blocks for the pyhodos interpreter.

This module contains the pieces the interpreter composes:
- errors: error taxonomy and reserved error names
- paths: Path addressing and Projection templates
- matcher: error pattern matching for Retry and Catch
- choice: Choice rule evaluation
- context: task-local RunContext for invokers
"""

from pyhodos.core.choice import choose_next, evaluate_rule
from pyhodos.core.context import RUN_CONTEXT, RunContext, get_current_run
from pyhodos.core.errors import (
    CAUSE_CANCELLED,
    ERROR_ALL,
    ERROR_CANCELLED,
    ERROR_FAIL,
    ERROR_NO_CHOICE_MATCHED,
    ERROR_RUNTIME,
    ERROR_TASK_FAILED,
    ERROR_TIMEOUT,
    Cancelled,
    HodosError,
    InvocationFailure,
    InvokerNotFound,
    PathError,
    RuntimeFailure,
    StorageError,
    TimeoutExceeded,
    UnroutedFailure,
    ValidationError,
)
from pyhodos.core.matcher import first_matching, matches
from pyhodos.core.paths import ROOT, Path, Projection

__all__ = [
    "choose_next",
    "evaluate_rule",
    "RUN_CONTEXT",
    "RunContext",
    "get_current_run",
    "CAUSE_CANCELLED",
    "ERROR_ALL",
    "ERROR_CANCELLED",
    "ERROR_FAIL",
    "ERROR_NO_CHOICE_MATCHED",
    "ERROR_RUNTIME",
    "ERROR_TASK_FAILED",
    "ERROR_TIMEOUT",
    "Cancelled",
    "HodosError",
    "InvocationFailure",
    "InvokerNotFound",
    "PathError",
    "RuntimeFailure",
    "StorageError",
    "TimeoutExceeded",
    "UnroutedFailure",
    "ValidationError",
    "first_matching",
    "matches",
    "ROOT",
    "Path",
    "Projection",
]
