"""
State specifications for workflow definitions.

Design Pattern: State Machine using Union types
Each state kind is its own frozen dataclass; State is the union of them.
The interpreter dispatches on the concrete type, so adding behavior never
requires touching the value types.

Design: Dependency-Free Models
Paths and projections are referenced for typing only, keeping this module
importable from anywhere without circular imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from pyhodos.models.choice import ChoiceRule
from pyhodos.models.retry import CatchRule, RetryRule

if TYPE_CHECKING:
    from pyhodos.core.paths import Path, Projection

__all__ = [
    "DISCARD",
    "TaskState",
    "ChoiceState",
    "FailState",
    "SucceedState",
    "State",
]


class _Discard:
    """Sentinel for result_path=null: keep the input, drop the task result."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DISCARD"

    def __reduce__(self):
        return (_Discard, ())


DISCARD = _Discard()


@dataclass(frozen=True)
class TaskState:
    """
    Invoke external work through the resource's invoker.

    Exactly one of next/end must be set; Definition validation enforces it.
    """

    resource: str
    """Opaque invocation reference, resolved by the host's InvokerRegistry."""

    next: str | None = None
    """State entered on success."""

    end: bool = False
    """When True, success ends the run with status SUCCEEDED."""

    timeout_seconds: float | None = None
    """Hard deadline for each attempt, measured from the start of the attempt."""

    retry: tuple[RetryRule, ...] = ()
    """Ordered retry rules; the first matching rule governs a failure."""

    catch: tuple[CatchRule, ...] = ()
    """Ordered catch rules, evaluated after retries are exhausted."""

    parameters: Projection | None = None
    """Builds the invoker input from the document. None passes the document."""

    result_selector: Projection | None = None
    """Builds a new object from the raw result before it is merged."""

    result_path: Path | _Discard | None = None
    """Where the result goes. None replaces the document, DISCARD drops it."""

    comment: str | None = field(default=None, kw_only=True)

    def __post_init__(self):
        object.__setattr__(self, "retry", tuple(self.retry))
        object.__setattr__(self, "catch", tuple(self.catch))

    @property
    def type_name(self) -> str:
        return "Task"

    def transitions(self) -> list[str]:
        """All states this state can move to (success path and catches)."""
        targets = [rule.next for rule in self.catch if hasattr(rule, "next")]
        if self.next is not None:
            targets.insert(0, self.next)
        return targets


@dataclass(frozen=True)
class ChoiceState:
    """Branch on the document: first matching rule wins, else default."""

    rules: tuple[ChoiceRule, ...]
    default: str | None = None
    comment: str | None = field(default=None, kw_only=True)

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def type_name(self) -> str:
        return "Choice"

    def transitions(self) -> list[str]:
        targets = [rule.next for rule in self.rules if hasattr(rule, "next")]
        if self.default is not None:
            targets.append(self.default)
        return targets


@dataclass(frozen=True)
class FailState:
    """Terminal state: the run ends with status FAILED."""

    cause: str = ""
    error: str = "States.Fail"
    comment: str | None = field(default=None, kw_only=True)

    @property
    def type_name(self) -> str:
        return "Fail"

    def transitions(self) -> list[str]:
        return []


@dataclass(frozen=True)
class SucceedState:
    """Terminal state: the run ends with status SUCCEEDED."""

    comment: str | None = field(default=None, kw_only=True)

    @property
    def type_name(self) -> str:
        return "Succeed"

    def transitions(self) -> list[str]:
        return []


State = Union[TaskState, ChoiceState, FailState, SucceedState]  # noqa: UP007
