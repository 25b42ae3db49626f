"""Tests for Choice rule evaluation."""

import pytest

from pyhodos.core.choice import choose_next, evaluate_rule
from pyhodos.core.errors import RuntimeFailure
from pyhodos.core.paths import Path
from pyhodos.models import ChoiceRule, ChoiceState, Comparator


def rule(variable: str, comparator: str, operand, next: str = "Next") -> ChoiceRule:
    return ChoiceRule(Path(variable), Comparator.from_name(comparator), operand, next)


# ==============================================================================
# Comparators
# ==============================================================================


@pytest.mark.parametrize(
    "comparator, operand, value, expected",
    [
        ("NumericEquals", 5, 5, True),
        ("NumericEquals", 5, 5.0, True),
        ("NumericLessThan", 10, 5, True),
        ("NumericLessThan", 5, 5, False),
        ("NumericLessThanEquals", 5, 5, True),
        ("NumericGreaterThan", 10, 15, True),
        ("NumericGreaterThanEquals", 10, 9.5, False),
        ("StringEquals", "Active", "Active", True),
        ("StringEquals", "Active", "active", False),
        ("StringLessThan", "b", "a", True),
        ("StringGreaterThanEquals", "b", "b", True),
        ("BooleanEquals", False, False, True),
        ("BooleanEquals", True, False, False),
    ],
)
def test_comparators(comparator, operand, value, expected):
    assert evaluate_rule(rule("$.v", comparator, operand), {"v": value}) is expected


def test_comparisons_are_typed():
    # A boolean is never numeric, even though bool subclasses int
    assert not evaluate_rule(rule("$.v", "NumericEquals", 1), {"v": True})
    assert not evaluate_rule(rule("$.v", "StringEquals", "5"), {"v": 5})
    assert not evaluate_rule(rule("$.v", "NumericEquals", 5), {"v": "5"})
    assert not evaluate_rule(rule("$.v", "BooleanEquals", False), {"v": 0})


def test_type_tests():
    doc = {"s": "x", "n": 1.5, "b": True, "z": None}
    assert evaluate_rule(rule("$.s", "IsString", True), doc)
    assert evaluate_rule(rule("$.n", "IsNumeric", True), doc)
    assert evaluate_rule(rule("$.b", "IsNumeric", False), doc)
    assert evaluate_rule(rule("$.b", "IsBoolean", True), doc)
    assert evaluate_rule(rule("$.z", "IsNull", True), doc)
    assert evaluate_rule(rule("$.s", "IsNull", False), doc)


def test_is_present_tolerates_missing_paths():
    assert evaluate_rule(rule("$.a", "IsPresent", True), {"a": None})
    assert evaluate_rule(rule("$.missing", "IsPresent", False), {})
    assert not evaluate_rule(rule("$.missing", "IsPresent", True), {})


def test_missing_path_is_a_runtime_error():
    with pytest.raises(RuntimeFailure) as exc_info:
        evaluate_rule(rule("$.missing", "NumericEquals", 1), {})
    assert exc_info.value.error == "States.Runtime"


# ==============================================================================
# choose_next
# ==============================================================================


def test_first_matching_rule_wins():
    state = ChoiceState(
        rules=(
            rule("$.count", "NumericGreaterThan", 10, "High"),
            rule("$.count", "NumericGreaterThan", 0, "Low"),
        ),
        default="None",
    )
    assert choose_next(state, {"count": 5}) == "Low"
    assert choose_next(state, {"count": 50}) == "High"
    assert choose_next(state, {"count": 0}) == "None"


def test_no_match_without_default_fails():
    state = ChoiceState(rules=(rule("$.status", "StringEquals", "Active", "Go"),))
    with pytest.raises(RuntimeFailure) as exc_info:
        choose_next(state, {"status": "Inactive"})
    assert exc_info.value.error == "States.NoChoiceMatched"


def test_endpoint_branch_of_training_pipeline():
    state = ChoiceState(
        rules=(
            rule(
                "$.checkEndpointOutput.Endpoint.frauddetection",
                "BooleanEquals",
                False,
                "Create endpoint",
            ),
        ),
        default="Update endpoint",
    )
    missing = {"checkEndpointOutput": {"Endpoint": {"frauddetection": False}}}
    present = {"checkEndpointOutput": {"Endpoint": {"frauddetection": True}}}
    assert choose_next(state, missing) == "Create endpoint"
    assert choose_next(state, present) == "Update endpoint"
