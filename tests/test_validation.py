"""
Tests for Definition construction and structural validation.
"""

import pytest

from pyhodos import (
    ChoiceRule,
    ChoiceState,
    Comparator,
    Definition,
    FailState,
    Path,
    SucceedState,
    TaskState,
    ValidationError,
)
from pyhodos.definition import validate
from pyhodos.models import CatchRule, RetryRule


def simple_definition(**task_overrides) -> Definition:
    task = {"resource": "lambda:work", "next": "Done"}
    task.update(task_overrides)
    return Definition(
        start_at="Work",
        states={"Work": TaskState(**task), "Done": SucceedState(), "Fail": FailState()},
    )


# ==============================================================================
# Valid definitions
# ==============================================================================


def test_valid_definition_builds():
    definition = simple_definition(catch=(CatchRule(("States.ALL",), next="Fail"),))
    assert definition.start_at == "Work"
    assert definition.resources() == {"lambda:work"}
    assert isinstance(definition.state("Done"), SucceedState)


def test_revalidation_is_a_no_op():
    definition = simple_definition(catch=(CatchRule(("States.ALL",), next="Fail"),))
    fingerprint = definition.fingerprint()
    assert validate(definition) is definition
    assert definition.fingerprint() == fingerprint


def test_definition_is_read_only():
    definition = Definition(start_at="Done", states={"Done": SucceedState()})
    with pytest.raises(TypeError):
        definition.states["Other"] = SucceedState()
    with pytest.raises(AttributeError):
        definition.start_at = "Other"


def test_fingerprint_ignores_state_order():
    a = Definition(
        start_at="Go", states={"Go": TaskState("r", next="Done"), "Done": SucceedState()}
    )
    b = Definition(
        start_at="Go", states={"Done": SucceedState(), "Go": TaskState("r", next="Done")}
    )
    c = Definition(start_at="Go", states={"Go": TaskState("other", end=True)})
    assert a.fingerprint() == b.fingerprint()
    assert a.fingerprint() != c.fingerprint()
    assert hash(a) == hash(b)


# ==============================================================================
# Rejected definitions
# ==============================================================================


def _problems(**kwargs) -> list[str]:
    with pytest.raises(ValidationError) as exc_info:
        Definition(**kwargs)
    return exc_info.value.problems


def test_empty_definition_is_rejected():
    assert _problems(start_at="A", states={}) == ["definition has no states"]


def test_missing_start_state():
    problems = _problems(start_at="Nope", states={"Done": SucceedState()})
    assert any("start state 'Nope'" in p for p in problems)


def test_every_problem_is_reported():
    problems = _problems(
        start_at="Work",
        states={
            "Work": TaskState("lambda:work", next="Missing", timeout_seconds=-1),
            "Done": SucceedState(),
        },
    )
    assert any("next target 'Missing'" in p for p in problems)
    assert any("timeout_seconds" in p for p in problems)
    assert any("unreachable states: Done" in p for p in problems)


def test_task_needs_exactly_one_of_next_and_end():
    problems = _problems(start_at="A", states={"A": TaskState("r"), "Done": SucceedState()})
    assert any("either next or end" in p for p in problems)

    problems = _problems(
        start_at="A", states={"A": TaskState("r", next="Done", end=True), "Done": SucceedState()}
    )
    assert any("both next and end" in p for p in problems)


def test_wildcard_must_stand_alone_and_come_last():
    problems = _problems(
        start_at="A",
        states={
            "A": TaskState(
                "r",
                end=True,
                retry=(
                    RetryRule(("States.ALL", "Other")),
                    RetryRule(("Specific",)),
                ),
            )
        },
    )
    assert any("wildcard must be the only pattern" in p for p in problems)
    assert any("wildcard rule must be the last rule" in p for p in problems)


def test_empty_error_patterns_rejected():
    problems = _problems(
        start_at="A", states={"A": TaskState("r", end=True, retry=(RetryRule(()),))}
    )
    assert any("error pattern list is empty" in p for p in problems)


def test_retry_settings_must_be_in_range():
    problems = _problems(
        start_at="A",
        states={
            "A": TaskState(
                "r",
                end=True,
                retry=(
                    RetryRule(
                        ("E",), interval_seconds=0, max_attempts=-1, backoff_rate=0.5
                    ),
                ),
            )
        },
    )
    assert any("interval_seconds must be positive" in p for p in problems)
    assert any("max_attempts must be a non-negative integer" in p for p in problems)
    assert any("backoff_rate must be >= 1.0" in p for p in problems)


def test_choice_needs_rules():
    problems = _problems(
        start_at="C", states={"C": ChoiceState(rules=(), default="Done"), "Done": SucceedState()}
    )
    assert any("choice state has no rules" in p for p in problems)


def test_choice_operand_must_fit_comparator():
    problems = _problems(
        start_at="C",
        states={
            "C": ChoiceState(
                rules=(ChoiceRule(Path("$.n"), Comparator.NUMERIC_EQUALS, "5", "Done"),),
            ),
            "Done": SucceedState(),
        },
    )
    assert any("needs a numeric operand" in p for p in problems)


def test_choice_rule_fields_must_be_typed():
    problems = _problems(
        start_at="C",
        states={
            "C": ChoiceState(
                rules=(
                    ChoiceRule(Path("$.n"), "NumericEquals", 5, "Done"),
                    ChoiceRule("$.n", Comparator.NUMERIC_EQUALS, 5, "Done"),
                    "n == 5",
                ),
            ),
            "Done": SucceedState(),
        },
    )
    assert any("rules[0] comparator must be a Comparator" in p for p in problems)
    assert any("rules[1] path must be a Path" in p for p in problems)
    assert any("rules[2] must be a ChoiceRule" in p for p in problems)


def test_no_reachable_terminal_state():
    problems = _problems(
        start_at="A",
        states={"A": TaskState("r", next="B"), "B": TaskState("r", next="A")},
    )
    assert any("no terminal state is reachable" in p for p in problems)


def test_run_timeout_must_be_positive():
    problems = _problems(start_at="Done", states={"Done": SucceedState()}, timeout_seconds=0)
    assert any("timeout_seconds must be a positive number" in p for p in problems)
