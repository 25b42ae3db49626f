"""Error matching shared by Retry and Catch evaluation.

A pattern is either a wildcard ("*", "ALL", "States.ALL"), the special
"States.TaskFailed" (any error except a timeout), or an exact error class
name. Rule lists are scanned in declared order and the first rule with a
matching pattern wins.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar

from pyhodos.core.errors import ERROR_TASK_FAILED, ERROR_TIMEOUT, WILDCARD_PATTERNS


class _HasPatterns(Protocol):
    error_patterns: tuple[str, ...]


R = TypeVar("R", bound=_HasPatterns)


def is_wildcard(pattern: str) -> bool:
    return pattern in WILDCARD_PATTERNS


def matches(pattern: str, error_class: str) -> bool:
    """
    Check whether a single pattern matches an error class.

    Example:
        matches("*", "Lambda.ServiceException")            # True
        matches("States.TaskFailed", "States.Timeout")     # False
        matches("ConnectionError", "ConnectionError")      # True
    """
    if is_wildcard(pattern):
        return True
    if pattern == ERROR_TASK_FAILED:
        return error_class != ERROR_TIMEOUT
    return pattern == error_class


def matches_any(patterns: Iterable[str], error_class: str) -> bool:
    return any(matches(pattern, error_class) for pattern in patterns)


def first_matching(rules: Sequence[R], error_class: str) -> R | None:
    """Return the first rule (declared order) whose patterns match, else None."""
    for rule in rules:
        if matches_any(rule.error_patterns, error_class):
            return rule
    return None
