"""
Choice state evaluation.

Rules are evaluated top to bottom; the first satisfied rule decides the
next state. Comparisons are typed: a String comparator against a number,
or a Numeric comparator against a boolean, is simply not satisfied.

A path that does not exist only makes sense for IsPresent. Every other
comparator treats a missing value as a data error (States.Runtime).
"""

import logging
import operator
from collections.abc import Callable
from typing import Any

from pyhodos.core.errors import ERROR_NO_CHOICE_MATCHED, PathError, RuntimeFailure
from pyhodos.models import ChoiceRule, ChoiceState, Comparator

logger = logging.getLogger(__name__)

_ORDERING: dict[str, Callable[[Any, Any], bool]] = {
    "Equals": operator.eq,
    "LessThan": operator.lt,
    "GreaterThan": operator.gt,
    "LessThanEquals": operator.le,
    "GreaterThanEquals": operator.ge,
}


def is_number(value: Any) -> bool:
    """Numbers are int or float; bool is excluded even though it subclasses int."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def _ordering_for(comparator: Comparator) -> Callable[[Any, Any], bool]:
    suffix = comparator.value.removeprefix("String").removeprefix("Numeric")
    return _ORDERING[suffix]


def evaluate_rule(rule: ChoiceRule, document: Any) -> bool:
    """
    Check a single rule against the document.

    Raises:
        RuntimeFailure: If the path is missing and the comparator is not IsPresent
    """
    comparator = rule.comparator

    if comparator is Comparator.IS_PRESENT:
        return rule.path.exists(document) == bool(rule.operand)

    try:
        value = rule.path.read(document)
    except PathError as e:
        raise RuntimeFailure(f"choice rule {rule}: {e}") from e

    if comparator is Comparator.IS_NULL:
        return (value is None) == bool(rule.operand)
    if comparator is Comparator.IS_STRING:
        return isinstance(value, str) == bool(rule.operand)
    if comparator is Comparator.IS_NUMERIC:
        return is_number(value) == bool(rule.operand)
    if comparator is Comparator.IS_BOOLEAN:
        return isinstance(value, bool) == bool(rule.operand)

    if comparator is Comparator.BOOLEAN_EQUALS:
        return isinstance(value, bool) and value == rule.operand

    if comparator.is_string:
        if not isinstance(value, str):
            return False
        return _ordering_for(comparator)(value, rule.operand)

    if comparator.is_numeric:
        if not is_number(value):
            return False
        return _ordering_for(comparator)(value, rule.operand)

    raise RuntimeFailure(f"unsupported comparator {comparator}")


def choose_next(state: ChoiceState, document: Any) -> str:
    """
    Pick the next state for a Choice state.

    Returns:
        The first matching rule's next state, otherwise the default

    Raises:
        RuntimeFailure: States.NoChoiceMatched when nothing matches and
            there is no default, States.Runtime for missing paths
    """
    for index, rule in enumerate(state.rules):
        if evaluate_rule(rule, document):
            logger.debug(f"Choice rule {index} matched: {rule}")
            return rule.next

    if state.default is None:
        raise RuntimeFailure("no choice rule matched and no default", error=ERROR_NO_CHOICE_MATCHED)

    logger.debug(f"No choice rule matched, taking default {state.default!r}")
    return state.default
