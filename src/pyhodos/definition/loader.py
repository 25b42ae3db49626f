"""
Load and dump definitions in the Amazon States Language shape.

The training pipeline this engine was built for is written as an ASL
document (StartAt, States, Type, Resource, Retry/Catch with ErrorEquals,
Choices with Variable plus a comparator key, "ResultPath": null ...).
load_definition() compiles such a document into typed states; paths and
projections are parsed here, so a malformed reference is reported as a
ValidationError before any run starts.

dump_definition() is the inverse and is what Definition.fingerprint()
hashes.

Example:
    definition = load_definition_json('''
    {
      "StartAt": "Check the existence of endpoint",
      "States": {
        "Check the existence of endpoint": {
          "Type": "Task",
          "Resource": "lambda:check-endpoint",
          "ResultPath": "$.checkEndpointOutput",
          "Next": "Create or update endpoint"
        },
        ...
      }
    }
    ''')
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pyhodos.core.errors import PathError, ValidationError
from pyhodos.core.paths import Path, Projection
from pyhodos.definition.model import Definition
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

logger = logging.getLogger(__name__)

__all__ = ["load_definition", "load_definition_json", "dump_definition"]

_COMPARATOR_KEYS = {comparator.value for comparator in Comparator}


def load_definition(document: Mapping[str, Any]) -> Definition:
    """
    Build a Definition from an ASL-shaped document.

    Raises:
        ValidationError: Listing every problem found while loading, or the
            structural problems found by Definition validation
    """
    if not isinstance(document, Mapping):
        raise ValidationError("definition document must be an object")

    problems: list[str] = []

    start_at = document.get("StartAt")
    if not isinstance(start_at, str):
        problems.append("StartAt must be a string")

    raw_states = document.get("States")
    if not isinstance(raw_states, Mapping) or not raw_states:
        problems.append("States must be a non-empty object")
        raw_states = {}

    states: dict[str, State] = {}
    for name, raw in raw_states.items():
        try:
            states[name] = _load_state(raw)
        except (PathError, ValueError, TypeError, KeyError) as e:
            problems.append(f"state {name!r}: {_describe(e)}")

    if problems:
        raise ValidationError(problems)

    definition = Definition(
        start_at=start_at,
        states=states,
        comment=document.get("Comment"),
        timeout_seconds=document.get("TimeoutSeconds"),
    )
    logger.debug(f"Loaded definition with {len(states)} states, start={start_at!r}")
    return definition


def load_definition_json(text: str) -> Definition:
    """Parse JSON text and load it with load_definition()."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"definition is not valid JSON: {e}") from e
    return load_definition(document)


def _describe(exc: Exception) -> str:
    if isinstance(exc, KeyError):
        return f"missing field {exc.args[0]!r}"
    return str(exc)


def _require(raw: Mapping[str, Any], key: str) -> Any:
    if key not in raw:
        raise KeyError(key)
    return raw[key]


def _optional_path(raw: Mapping[str, Any], key: str) -> Path | object | None:
    if key not in raw:
        return None
    if raw[key] is None:
        return DISCARD
    return Path(raw[key])


def _optional_projection(raw: Mapping[str, Any], key: str) -> Projection | None:
    if raw.get(key) is None:
        return None
    return Projection(raw[key])


def _patterns(raw: Mapping[str, Any]) -> tuple[str, ...]:
    patterns = _require(raw, "ErrorEquals")
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise TypeError("ErrorEquals must be a list of strings")
    return tuple(patterns)


def _load_state(raw: Any) -> State:
    if not isinstance(raw, Mapping):
        raise TypeError("state must be an object")

    state_type = _require(raw, "Type")
    comment = raw.get("Comment")

    if state_type == "Task":
        return TaskState(
            resource=_require(raw, "Resource"),
            next=raw.get("Next"),
            end=bool(raw.get("End", False)),
            timeout_seconds=raw.get("TimeoutSeconds"),
            retry=tuple(_load_retry(item) for item in raw.get("Retry", [])),
            catch=tuple(_load_catch(item) for item in raw.get("Catch", [])),
            parameters=_optional_projection(raw, "Parameters"),
            result_selector=_optional_projection(raw, "ResultSelector"),
            result_path=_optional_path(raw, "ResultPath"),
            comment=comment,
        )

    if state_type == "Choice":
        return ChoiceState(
            rules=tuple(_load_choice_rule(item) for item in _require(raw, "Choices")),
            default=raw.get("Default"),
            comment=comment,
        )

    if state_type == "Fail":
        return FailState(
            cause=raw.get("Cause", ""),
            error=raw.get("Error", "States.Fail"),
            comment=comment,
        )

    if state_type == "Succeed":
        return SucceedState(comment=comment)

    raise ValueError(f"unsupported state type {state_type!r}")


def _load_retry(raw: Mapping[str, Any]) -> RetryRule:
    return RetryRule(
        error_patterns=_patterns(raw),
        interval_seconds=raw.get("IntervalSeconds", 1),
        max_attempts=raw.get("MaxAttempts", 3),
        backoff_rate=raw.get("BackoffRate", 2.0),
        max_delay_seconds=raw.get("MaxDelaySeconds"),
    )


def _load_catch(raw: Mapping[str, Any]) -> CatchRule:
    return CatchRule(
        error_patterns=_patterns(raw),
        next=_require(raw, "Next"),
        result_path=_optional_path(raw, "ResultPath"),
    )


def _load_choice_rule(raw: Mapping[str, Any]) -> ChoiceRule:
    comparator_keys = [key for key in raw if key in _COMPARATOR_KEYS]
    if len(comparator_keys) != 1:
        raise ValueError(
            f"choice rule needs exactly one comparator, found {comparator_keys or 'none'}"
        )
    key = comparator_keys[0]
    return ChoiceRule(
        path=Path(_require(raw, "Variable")),
        comparator=Comparator.from_name(key),
        operand=raw[key],
        next=_require(raw, "Next"),
    )


# =============================================================================
# Dump
# =============================================================================


def _dump_path(path: Path | object | None) -> str | None:
    if path is DISCARD:
        return None
    return str(path)


def _dump_state(state: State) -> dict[str, Any]:
    data: dict[str, Any] = {"Type": state.type_name}
    if state.comment is not None:
        data["Comment"] = state.comment

    if isinstance(state, TaskState):
        data["Resource"] = state.resource
        if state.end:
            data["End"] = True
        else:
            data["Next"] = state.next
        if state.timeout_seconds is not None:
            data["TimeoutSeconds"] = state.timeout_seconds
        if state.parameters is not None:
            data["Parameters"] = state.parameters.template
        if state.result_selector is not None:
            data["ResultSelector"] = state.result_selector.template
        if state.result_path is not None:
            data["ResultPath"] = _dump_path(state.result_path)
        if state.retry:
            data["Retry"] = [_dump_retry(rule) for rule in state.retry]
        if state.catch:
            data["Catch"] = [_dump_catch(rule) for rule in state.catch]

    elif isinstance(state, ChoiceState):
        data["Choices"] = [
            {"Variable": str(rule.path), rule.comparator.value: rule.operand, "Next": rule.next}
            for rule in state.rules
        ]
        if state.default is not None:
            data["Default"] = state.default

    elif isinstance(state, FailState):
        data["Error"] = state.error
        data["Cause"] = state.cause

    return data


def _dump_retry(rule: RetryRule) -> dict[str, Any]:
    data = {
        "ErrorEquals": list(rule.error_patterns),
        "IntervalSeconds": rule.interval_seconds,
        "MaxAttempts": rule.max_attempts,
        "BackoffRate": rule.backoff_rate,
    }
    if rule.max_delay_seconds is not None:
        data["MaxDelaySeconds"] = rule.max_delay_seconds
    return data


def _dump_catch(rule: CatchRule) -> dict[str, Any]:
    data: dict[str, Any] = {"ErrorEquals": list(rule.error_patterns), "Next": rule.next}
    if rule.result_path is not None:
        data["ResultPath"] = _dump_path(rule.result_path)
    return data


def dump_definition(definition: Definition) -> dict[str, Any]:
    """Convert a Definition back into an ASL-shaped document."""
    data: dict[str, Any] = {
        "StartAt": definition.start_at,
        "States": {name: _dump_state(state) for name, state in definition.states.items()},
    }
    if definition.comment is not None:
        data["Comment"] = definition.comment
    if definition.timeout_seconds is not None:
        data["TimeoutSeconds"] = definition.timeout_seconds
    return data
