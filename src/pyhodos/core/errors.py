"""
Error taxonomy for pyhodos.

From Dave Cheney: "Errors are values"
Every failure the engine can observe has its own exception type carrying
the context a user needs: the error class used for Retry/Catch matching,
a human-readable cause, and where relevant the failing state.

Propagation:
- InvocationFailure / TimeoutExceeded: offered to Retry, then Catch
- UnroutedFailure, Cancelled, States.Runtime errors: fatal to the run
- ValidationError: fatal to the definition load, never raised mid-run
"""

# =============================================================================
# Reserved error names
# =============================================================================

ERROR_ALL = "States.ALL"
"""Wildcard matching every error class."""

WILDCARD_PATTERNS = frozenset({"*", "ALL", ERROR_ALL})
"""All spellings accepted for the wildcard pattern."""

ERROR_TASK_FAILED = "States.TaskFailed"
"""Matches any task error except a timeout."""

ERROR_TIMEOUT = "States.Timeout"
"""A task attempt (or the whole run) exceeded its deadline."""

ERROR_RUNTIME = "States.Runtime"
"""Data error inside the engine (bad path, unmergeable result). Not retryable."""

ERROR_NO_CHOICE_MATCHED = "States.NoChoiceMatched"
"""A Choice state without default found no matching rule."""

ERROR_CANCELLED = "States.Cancelled"
"""The run was cancelled through its handle."""

ERROR_FAIL = "States.Fail"
"""Default error class for an explicit Fail state."""

CAUSE_CANCELLED = "Cancelled"


class HodosError(Exception):
    """Base class for all pyhodos errors."""

    pass


class ValidationError(HodosError):
    """
    Malformed workflow definition.

    Collects every problem found instead of stopping at the first one.

    Attributes:
        problems: Human-readable descriptions of each problem
    """

    def __init__(self, problems: list[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("invalid workflow definition: " + "; ".join(self.problems))


class PathError(HodosError):
    """A path could not be parsed, read, or written."""

    pass


class InvocationFailure(HodosError):
    """
    The task invoker reported an application error.

    Invokers raise this (or any other exception, which the engine
    classifies by its class name) to fail a Task attempt.

    Example:
        raise InvocationFailure("Lambda.ServiceException", "throttled")

        # Permanent error - skips Retry, still offered to Catch
        raise InvocationFailure("Model.Invalid", "bad artifact", retryable=False)
    """

    def __init__(self, error: str, cause: str = "", retryable: bool = True):
        self.error = error
        self.cause = cause
        self._retryable = retryable
        super().__init__(f"{error}: {cause}" if cause else error)

    def is_retryable(self) -> bool:
        """
        Returns True if Retry rules may apply to this failure.

        - True: transient error, Retry then Catch
        - False: permanent error, Catch only
        """
        return self._retryable


class TimeoutExceeded(InvocationFailure):
    """A Task attempt ran past its timeout_seconds."""

    def __init__(self, timeout_seconds: float, state_name: str | None = None):
        self.timeout_seconds = timeout_seconds
        self.state_name = state_name
        where = f" in state {state_name!r}" if state_name else ""
        super().__init__(ERROR_TIMEOUT, f"timed out after {timeout_seconds}s{where}")


class RuntimeFailure(HodosError):
    """Engine-side data error during a state (States.Runtime). Fatal to the run."""

    def __init__(self, cause: str, error: str = ERROR_RUNTIME):
        self.error = error
        self.cause = cause
        super().__init__(f"{error}: {cause}")


class UnroutedFailure(HodosError):
    """
    An error that no Retry or Catch rule handled.

    Attributes:
        error: Error class
        cause: Human-readable cause
        state_name: State where the error was raised
    """

    def __init__(self, error: str, cause: str, state_name: str):
        self.error = error
        self.cause = cause
        self.state_name = state_name
        super().__init__(f"unrouted failure in state {state_name!r}: {error}: {cause}")


class Cancelled(HodosError):
    """
    The run was cancelled through its RunHandle.

    Built from the asyncio.CancelledError that interrupts a pending wait
    and recorded like any other fatal failure.

    Attributes:
        state_name: State the run was in, None if it never started
    """

    error = ERROR_CANCELLED
    cause = CAUSE_CANCELLED

    def __init__(self, state_name: str | None):
        self.state_name = state_name
        super().__init__(f"run cancelled in state {state_name!r}")


class InvokerNotFound(HodosError):
    """No invoker registered for an invocation reference."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"no invoker registered for resource {resource!r}")


class StorageError(HodosError):
    """
    Run log operation failed.

    Custom exception with context, not generic Exception.
    """

    pass


def classify(exc: BaseException) -> tuple[str, str]:
    """
    Map an exception raised by an invoker to (error class, cause).

    InvocationFailure carries its own error class; any other exception is
    classified by its class name, so Retry/Catch rules can name plain
    Python exceptions such as "ConnectionError".
    """
    if isinstance(exc, InvocationFailure):
        return exc.error, exc.cause
    return type(exc).__name__, str(exc)


def is_retryable(exc: BaseException) -> bool:
    """Honour an is_retryable() method when the exception provides one."""
    check = getattr(exc, "is_retryable", None)
    if callable(check):
        return bool(check())
    return True
