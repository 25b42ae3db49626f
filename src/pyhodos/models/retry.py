"""
Retry and catch rules for Task states.

Design Pattern: Strategy Pattern
RetryRule encapsulates one backoff strategy for a family of error classes,
allowing each Task state to declare its own retry behavior without the
interpreter knowing anything about specific errors.

Design Rationale:
- Rules are ordered: the first rule whose patterns match an error governs it
- Rules are never combined
- Safe default when no rule matches: no automatic retries
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from pyhodos.core.paths import Path


@dataclass(frozen=True)
class RetryRule:
    """
    Retry behavior for the error classes listed in error_patterns.

    Examples:
        # Transient service errors, the shape used by the training pipeline
        rule = RetryRule(
            error_patterns=("Lambda.ServiceException", "Lambda.SdkClientException"),
            interval_seconds=2,
            max_attempts=6,
            backoff_rate=2.0,
        )

        # Named rule: retry anything with sensible defaults
        rule = RetryRule.STANDARD
    """

    error_patterns: tuple[str, ...]
    """Error classes (or wildcards) this rule applies to, in declared order."""

    interval_seconds: float = 1.0
    """Wait before the first retry, in seconds."""

    max_attempts: int = 3
    """Maximum number of retries (not counting the first invocation).

    For example, max_attempts = 3 means:
    - Attempt 1: immediate (first try)
    - Attempt 2: after interval_seconds
    - Attempt 3: after interval_seconds * backoff_rate
    - Attempt 4: after interval_seconds * backoff_rate^2

    max_attempts = 0 disables retries for the matched errors.
    """

    backoff_rate: float = 2.0
    """Multiplier applied to the wait on each successive retry."""

    max_delay_seconds: float | None = None
    """Optional cap on the computed wait, in seconds."""

    if TYPE_CHECKING:
        STANDARD: RetryRule
    else:
        STANDARD = cast("RetryRule", None)

    def __post_init__(self):
        # Accept lists from callers but store an immutable tuple
        object.__setattr__(self, "error_patterns", tuple(self.error_patterns))

    def is_exhausted(self, attempt: int) -> bool:
        """
        Check whether a failure at this attempt has used up the rule.

        Args:
            attempt: The attempt that just failed (1-indexed)

        Returns:
            True if no further retry is allowed
        """
        return attempt > self.max_attempts

    def delay_for_attempt(self, attempt: int) -> float | None:
        """
        Calculate the wait before re-invoking after a failure.

        Uses exponential backoff: interval_seconds * backoff_rate^(attempt-1)
        capped at max_delay_seconds.

        Args:
            attempt: The attempt that just failed (1-indexed)

        Returns:
            Wait in seconds, or None if the rule is exhausted.

        Example:
            rule = RetryRule(("*",), interval_seconds=2, max_attempts=3, backoff_rate=2)
            rule.delay_for_attempt(1)  # 2.0
            rule.delay_for_attempt(2)  # 4.0
            rule.delay_for_attempt(3)  # 8.0
            rule.delay_for_attempt(4)  # None
        """
        if self.is_exhausted(attempt):
            return None

        # attempt=1 (first retry): backoff_rate^0 = 1 → interval_seconds
        delay = self.interval_seconds * (self.backoff_rate ** (attempt - 1))

        if self.max_delay_seconds is not None:
            delay = min(delay, self.max_delay_seconds)

        return float(delay)

    def __repr__(self) -> str:
        """Readable representation for debugging."""
        return (
            f"RetryRule(error_patterns={list(self.error_patterns)}, "
            f"interval_seconds={self.interval_seconds}, "
            f"max_attempts={self.max_attempts}, "
            f"backoff_rate={self.backoff_rate})"
        )


RetryRule.STANDARD = RetryRule(
    error_patterns=("States.ALL",),
    interval_seconds=1.0,
    max_attempts=3,
    backoff_rate=2.0,
)


@dataclass(frozen=True)
class CatchRule:
    """
    Failure route taken once retries are exhausted or not applicable.

    The error object {"Error": ..., "Cause": ...} is written into the
    document at result_path (or replaces the whole document when
    result_path is None), then the run moves to next.
    """

    error_patterns: tuple[str, ...]
    """Error classes (or wildcards) this rule catches, in declared order."""

    next: str
    """State entered after the error is caught."""

    result_path: Path | object | None = None
    """Where to write the error object.

    None replaces the whole document; DISCARD keeps the input unchanged.
    """

    def __post_init__(self):
        object.__setattr__(self, "error_patterns", tuple(self.error_patterns))
