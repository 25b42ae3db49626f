"""
Run outcomes.

**Design Pattern**: State Machine using Union types
A finished run is either Succeeded (with the final document) or Failed
(with error class, cause and the state that failed). Nothing else.

Example:
    ```python
    outcome = await handle.result()

    match outcome:
        case Succeeded(output):
            print(f"Run succeeded: {output}")
        case Failed(error, cause, state_name):
            print(f"Run failed in {state_name}: {error}: {cause}")
    ```
"""

from dataclasses import dataclass
from typing import Any, TypeGuard, Union

__all__ = [
    "Succeeded",
    "Failed",
    "RunOutcome",
    "is_succeeded",
    "is_failed",
]


@dataclass(frozen=True)
class Succeeded:
    """The run reached a terminal success state."""

    output: Any
    """Final document."""

    def __str__(self) -> str:
        return "Succeeded"


@dataclass(frozen=True)
class Failed:
    """
    The run ended in FAILED.

    Attributes:
        error: Error class (e.g. "States.Timeout", "Lambda.ServiceException")
        cause: Human-readable cause
        state_name: State where the run failed, None for run-level failures
            that happened outside any state
    """

    error: str
    cause: str
    state_name: str | None = None

    def __str__(self) -> str:
        where = f" in {self.state_name!r}" if self.state_name else ""
        return f"Failed{where}: {self.error}: {self.cause}"


RunOutcome = Union[Succeeded, Failed]


def is_succeeded(outcome: RunOutcome) -> TypeGuard[Succeeded]:
    return isinstance(outcome, Succeeded)


def is_failed(outcome: RunOutcome) -> TypeGuard[Failed]:
    return isinstance(outcome, Failed)
