"""Retry and Catch decisions for failed Task attempts.

Retry is always consulted first. Catch only sees an error once Retry has
nothing more to offer: no rule matched, the matching rule is exhausted, or
the error declared itself non-retryable.
"""

import logging
from typing import Any

from pyhodos.core.matcher import first_matching
from pyhodos.models import CatchRule, TaskState

logger = logging.getLogger(__name__)

__all__ = ["check_should_retry", "find_catch", "error_object"]


def check_should_retry(
    state: TaskState, error: str, attempt: int, retryable: bool = True
) -> float | None:
    """Check if a failed attempt should be retried.

    The first Retry rule whose patterns match the error governs; rules are
    never combined.

    Args:
        state: Task state that failed
        error: Error class of the failure
        attempt: Attempt that just failed (1-indexed)
        retryable: False when the error refuses retries

    Returns:
        Seconds to wait before the next attempt, None if the error goes to Catch

    Example:
        ```python
        delay = check_should_retry(state, "Lambda.ServiceException", attempt)
        if delay is not None:
            await sleep(delay)
            attempt += 1
        else:
            rule = find_catch(state, "Lambda.ServiceException")
        ```
    """
    if not retryable:
        logger.debug(f"Error {error} is not retryable - skipping retry rules")
        return None

    rule = first_matching(state.retry, error)
    if rule is None:
        logger.debug(f"No retry rule matches {error}")
        return None

    delay = rule.delay_for_attempt(attempt)
    if delay is None:
        logger.debug(f"Retry rule {rule} exhausted after attempt {attempt} for {error}")
        return None

    return delay


def find_catch(state: TaskState, error: str) -> CatchRule | None:
    """Return the first Catch rule matching the error, or None if it is unrouted."""
    return first_matching(state.catch, error)


def error_object(error: str, cause: str) -> dict[str, Any]:
    """The object a Catch rule writes into the document."""
    return {"Error": error, "Cause": cause}
