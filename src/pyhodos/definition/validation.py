"""
Structural validation of workflow definitions.

validate() collects every problem it finds and raises a single
ValidationError listing them, so an author fixes a definition in one pass
instead of one error at a time. It never mutates the definition and
returns it unchanged, so re-validating a valid definition is a no-op.

Checks:
- start state exists; every next/default/catch target exists
- every Task has exactly one of next/end
- Retry/Catch pattern lists are non-empty; a wildcard stands alone and
  its rule comes last
- numeric settings are in range (intervals, attempts, backoff, timeouts)
- Choice states have rules, and operands agree with their comparators
- every state is reachable and some terminal state is reachable
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from pyhodos.core.choice import is_number
from pyhodos.core.errors import ValidationError
from pyhodos.core.matcher import is_wildcard
from pyhodos.core.paths import Path, Projection
from pyhodos.models import (
    DISCARD,
    CatchRule,
    ChoiceRule,
    ChoiceState,
    Comparator,
    FailState,
    RetryRule,
    State,
    SucceedState,
    TaskState,
)

if TYPE_CHECKING:
    from pyhodos.definition.model import Definition

logger = logging.getLogger(__name__)

__all__ = ["validate", "is_terminal"]


def is_terminal(state: State) -> bool:
    """A state that can end a run: Succeed, Fail, or a Task with end=True."""
    if isinstance(state, SucceedState | FailState):
        return True
    return isinstance(state, TaskState) and state.end


def validate(definition: Definition) -> Definition:
    """
    Validate a definition.

    Returns:
        The same definition, untouched

    Raises:
        ValidationError: Listing every problem found
    """
    problems: list[str] = []
    states = definition.states

    if not states:
        raise ValidationError("definition has no states")

    if definition.start_at not in states:
        problems.append(f"start state {definition.start_at!r} does not exist")

    if definition.timeout_seconds is not None and not _positive(definition.timeout_seconds):
        problems.append("definition timeout_seconds must be a positive number")

    for name, state in states.items():
        if not isinstance(name, str) or not name:
            problems.append(f"state name {name!r} must be a non-empty string")
            continue
        problems.extend(f"state {name!r}: {problem}" for problem in _check_state(state, states))

    if definition.start_at in states:
        reachable = _reachable(definition.start_at, states)
        unreachable = sorted(set(states) - reachable)
        if unreachable:
            problems.append(f"unreachable states: {', '.join(unreachable)}")
        if not any(is_terminal(states[name]) for name in reachable):
            problems.append("no terminal state is reachable from the start state")

    if problems:
        logger.debug(f"Definition rejected with {len(problems)} problem(s)")
        raise ValidationError(problems)

    return definition


def _positive(value: object) -> bool:
    return is_number(value) and value > 0


def _check_state(state: State, states: Mapping[str, State]) -> list[str]:
    if isinstance(state, TaskState):
        return _check_task(state, states)
    if isinstance(state, ChoiceState):
        return _check_choice(state, states)
    if isinstance(state, FailState):
        problems = []
        if not isinstance(state.cause, str):
            problems.append("cause must be a string")
        if not isinstance(state.error, str) or not state.error:
            problems.append("error must be a non-empty string")
        return problems
    if isinstance(state, SucceedState):
        return []
    return [f"unknown state type {type(state).__name__}"]


def _check_target(kind: str, target: str | None, states: Mapping[str, State]) -> list[str]:
    if target not in states:
        return [f"{kind} target {target!r} does not exist"]
    return []


def _check_task(state: TaskState, states: Mapping[str, State]) -> list[str]:
    problems: list[str] = []

    if not isinstance(state.resource, str) or not state.resource:
        problems.append("resource must be a non-empty string")

    if state.end and state.next is not None:
        problems.append("task cannot have both next and end")
    elif not state.end and state.next is None:
        problems.append("task must have either next or end")
    elif state.next is not None:
        problems.extend(_check_target("next", state.next, states))

    if state.timeout_seconds is not None and not _positive(state.timeout_seconds):
        problems.append("timeout_seconds must be a positive number")

    for kind, projection in (("parameters", state.parameters),
                             ("result_selector", state.result_selector)):
        if projection is not None and not isinstance(projection, Projection):
            problems.append(f"{kind} must be a Projection")

    if state.result_path is not None and state.result_path is not DISCARD:
        if not isinstance(state.result_path, Path):
            problems.append("result_path must be a Path, DISCARD or None")

    problems.extend(_check_patterns("retry", state.retry))
    for index, rule in enumerate(state.retry):
        if not isinstance(rule, RetryRule):
            problems.append(f"retry[{index}] must be a RetryRule")
            continue
        if not _positive(rule.interval_seconds):
            problems.append(f"retry[{index}] interval_seconds must be positive")
        if not isinstance(rule.max_attempts, int) or isinstance(rule.max_attempts, bool) \
                or rule.max_attempts < 0:
            problems.append(f"retry[{index}] max_attempts must be a non-negative integer")
        if not is_number(rule.backoff_rate) or rule.backoff_rate < 1.0:
            problems.append(f"retry[{index}] backoff_rate must be >= 1.0")
        if rule.max_delay_seconds is not None and not _positive(rule.max_delay_seconds):
            problems.append(f"retry[{index}] max_delay_seconds must be positive")

    problems.extend(_check_patterns("catch", state.catch))
    for index, rule in enumerate(state.catch):
        if not isinstance(rule, CatchRule):
            problems.append(f"catch[{index}] must be a CatchRule")
            continue
        problems.extend(_check_target(f"catch[{index}]", rule.next, states))
        if rule.result_path is not None and rule.result_path is not DISCARD \
                and not isinstance(rule.result_path, Path):
            problems.append(f"catch[{index}] result_path must be a Path, DISCARD or None")

    return problems


def _check_patterns(kind: str, rules: Sequence[RetryRule | CatchRule]) -> list[str]:
    problems: list[str] = []
    for index, rule in enumerate(rules):
        patterns = getattr(rule, "error_patterns", ())
        if not patterns:
            problems.append(f"{kind}[{index}] error pattern list is empty")
            continue
        if any(is_wildcard(pattern) for pattern in patterns):
            if len(patterns) > 1:
                problems.append(f"{kind}[{index}] wildcard must be the only pattern")
            if index != len(rules) - 1:
                problems.append(f"{kind}[{index}] wildcard rule must be the last rule")
    return problems


def _check_choice(state: ChoiceState, states: Mapping[str, State]) -> list[str]:
    problems: list[str] = []

    if not state.rules:
        problems.append("choice state has no rules")

    for index, rule in enumerate(state.rules):
        if not isinstance(rule, ChoiceRule):
            problems.append(f"rules[{index}] must be a ChoiceRule")
            continue
        problems.extend(_check_target(f"rules[{index}]", rule.next, states))
        if not isinstance(rule.path, Path):
            problems.append(f"rules[{index}] path must be a Path")
        comparator = rule.comparator
        if not isinstance(comparator, Comparator):
            problems.append(f"rules[{index}] comparator must be a Comparator")
            continue
        operand = rule.operand
        if comparator.is_string and not isinstance(operand, str):
            problems.append(f"rules[{index}] {comparator} needs a string operand")
        elif comparator.is_numeric and not is_number(operand):
            problems.append(f"rules[{index}] {comparator} needs a numeric operand")
        elif (comparator.is_type_test or comparator.value == "BooleanEquals") \
                and not isinstance(operand, bool):
            problems.append(f"rules[{index}] {comparator} needs a boolean operand")

    if state.default is not None:
        problems.extend(_check_target("default", state.default, states))

    return problems


def _reachable(start: str, states: Mapping[str, State]) -> set[str]:
    seen: set[str] = set()
    pending = [start]
    while pending:
        name = pending.pop()
        if name in seen or name not in states:
            continue
        seen.add(name)
        transitions = getattr(states[name], "transitions", None)
        if callable(transitions):
            pending.extend(transitions())
    return seen
