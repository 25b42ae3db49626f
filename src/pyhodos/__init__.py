"""
Hodos: workflow orchestration for Python

A state-machine interpreter that threads a JSON-like document through
named states, with per-state Retry/Catch policies, timeouts, data-driven
Choice branches and three ways to wait for external work (sync call,
callback, poll-to-completion).

Design Pattern: Façade Pattern
This module provides a simplified interface to the hodos engine, hiding
the layering of definitions, invokers, executor and storage.

From Dave Cheney: "A good package starts with its name"
Package "hodos" (Greek: path/way) describes what it provides: the path a
document takes through a workflow.

Example:
    ```python
    import asyncio
    from pyhodos import Engine, InvokerRegistry, load_definition

    definition = load_definition({
        "StartAt": "Check the existence of endpoint",
        "States": {
            "Check the existence of endpoint": {
                "Type": "Task",
                "Resource": "lambda:check-endpoint",
                "ResultPath": "$.checkEndpointOutput",
                "Next": "Create or update endpoint",
            },
            "Create or update endpoint": {
                "Type": "Choice",
                "Choices": [{
                    "Variable": "$.checkEndpointOutput.Endpoint.frauddetection",
                    "BooleanEquals": False,
                    "Next": "Create endpoint",
                }],
                "Default": "Update endpoint",
            },
            "Create endpoint": {"Type": "Task", "Resource": "sagemaker:create", "End": True},
            "Update endpoint": {"Type": "Task", "Resource": "sagemaker:update", "End": True},
        },
    })

    async def main():
        registry = InvokerRegistry()
        registry.register_function("lambda:check-endpoint", check_endpoint)
        registry.register_function("sagemaker:create", create_endpoint)
        registry.register_function("sagemaker:update", update_endpoint)

        engine = Engine(registry)
        outcome = await engine.execute(definition, {"modelName": "fraud-detection"})
        print(outcome)

    asyncio.run(main())
    ```
"""

# Errors
from pyhodos.core.errors import (
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

# Paths and run context
from pyhodos.core.paths import ROOT, Path, Projection
from pyhodos.core.context import RunContext, get_current_run

# Definitions
from pyhodos.models import (
    DISCARD,
    CatchRule,
    ChoiceRule,
    ChoiceState,
    Comparator,
    EventType,
    FailState,
    HistoryEvent,
    JobStatus,
    RetryRule,
    RunRecord,
    RunStatus,
    SucceedState,
    TaskState,
)
from pyhodos.definition import Definition, dump_definition, load_definition, load_definition_json

# Invokers (Adapter pattern)
from pyhodos.invokers import (
    CallbackInvoker,
    FunctionInvoker,
    InvokerRegistry,
    JobResult,
    PollingInvoker,
    SyncInvoker,
    TaskCallback,
    send_task_failure,
    send_task_success,
)

# Observability
from pyhodos.events import EventSink, InMemoryEventSink, LoggingEventSink

# Storage (Adapter pattern)
from pyhodos.storage import InMemoryRunLog, RunLog, SqliteRunLog

# Execution
from pyhodos.executor import (
    Engine,
    Failed,
    RunHandle,
    RunOutcome,
    Succeeded,
    execute,
    is_failed,
    is_succeeded,
    start,
)

# Version
__version__ = "0.1.0"

__all__ = [
    # Errors
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

    # Paths and run context
    "ROOT",
    "Path",
    "Projection",
    "RunContext",
    "get_current_run",

    # Definitions
    "DISCARD",
    "CatchRule",
    "ChoiceRule",
    "ChoiceState",
    "Comparator",
    "EventType",
    "FailState",
    "HistoryEvent",
    "JobStatus",
    "RetryRule",
    "RunRecord",
    "RunStatus",
    "SucceedState",
    "TaskState",
    "Definition",
    "dump_definition",
    "load_definition",
    "load_definition_json",

    # Invokers
    "CallbackInvoker",
    "FunctionInvoker",
    "InvokerRegistry",
    "JobResult",
    "PollingInvoker",
    "SyncInvoker",
    "TaskCallback",
    "send_task_failure",
    "send_task_success",

    # Observability
    "EventSink",
    "InMemoryEventSink",
    "LoggingEventSink",

    # Storage
    "InMemoryRunLog",
    "RunLog",
    "SqliteRunLog",

    # Execution
    "Engine",
    "Failed",
    "RunHandle",
    "RunOutcome",
    "Succeeded",
    "execute",
    "is_failed",
    "is_succeeded",
    "start",

    # Metadata
    "__version__",
]
