"""Callback completion for long-running tasks.

Provides:
- TaskCallback: a one-shot completion token handed to CallbackInvokers
- send_task_success / send_task_failure: complete a task by its token
  from anywhere (a webhook handler, a queue consumer, another thread)

Design: Information Hiding (Parnas)
Encapsulates how a waiting run is woken up. Pending callbacks live in a
module-level dictionary keyed by token; each callback owns an
asyncio.Future bound to the run's event loop, and completions from other
threads are marshalled onto that loop with call_soon_threadsafe.

The first completion wins. Later completions (or completions for a token
that is unknown or already closed) are ignored and reported as False.
"""

import asyncio
import copy
import logging
import threading
from typing import Any

from uuid_extensions import uuid7

from pyhodos.core.errors import InvocationFailure

logger = logging.getLogger(__name__)

# Module-level so out-of-band completions can find the waiting run
_pending: dict[str, "TaskCallback"] = {}

# Completions may arrive from threads other than the event loop's
_lock = threading.Lock()


class TaskCallback:
    """One-shot completion handle for a single task attempt.

    Example:
        ```python
        class ApprovalInvoker(CallbackInvoker):
            async def invoke_async(self, ref, input, callback):
                await queue.publish({"token": callback.token, "request": input})

        # Later, in the consumer:
        send_task_success(message["token"], {"approved": True})
        ```
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()
        self._completed = False
        self.token = str(uuid7())
        with _lock:
            _pending[self.token] = self

    @property
    def completed(self) -> bool:
        return self._completed

    def _claim(self) -> bool:
        with _lock:
            if self._completed:
                return False
            self._completed = True
            return True

    def _resolve(self, output: Any = None, failure: InvocationFailure | None = None) -> None:
        if self._future.done():
            return
        if failure is not None:
            self._future.set_exception(failure)
        else:
            self._future.set_result(output)

    def succeed(self, output: Any = None) -> bool:
        """Complete the task with output. Returns False if already completed."""
        if not self._claim():
            logger.debug(f"Ignoring late success for task token {self.token}")
            return False
        self._loop.call_soon_threadsafe(self._resolve, copy.deepcopy(output), None)
        return True

    def fail(self, error: str, cause: str = "") -> bool:
        """Fail the task with an error class and cause. Returns False if already completed."""
        if not self._claim():
            logger.debug(f"Ignoring late failure for task token {self.token}")
            return False
        self._loop.call_soon_threadsafe(self._resolve, None, InvocationFailure(error, cause))
        return True

    async def wait(self) -> Any:
        """Wait for completion. Raises InvocationFailure if the task failed."""
        return await self._future

    def close(self) -> None:
        """Forget the token. Later completions are ignored."""
        with _lock:
            _pending.pop(self.token, None)
            self._completed = True

    def __repr__(self) -> str:
        return f"TaskCallback(token={self.token!r}, completed={self._completed})"


def _lookup(token: str) -> TaskCallback | None:
    with _lock:
        return _pending.get(token)


def send_task_success(token: str, output: Any = None) -> bool:
    """Complete the task waiting on token with output.

    Safe to call from any thread.

    Returns:
        True if a waiting task was completed, False if the token is unknown,
        already completed or its run has moved on
    """
    callback = _lookup(token)
    if callback is None:
        logger.warning(f"send_task_success: unknown or closed task token {token}")
        return False
    return callback.succeed(output)


def send_task_failure(token: str, error: str, cause: str = "") -> bool:
    """Fail the task waiting on token with an error class and cause.

    Safe to call from any thread. Returns False for unknown or closed tokens.
    """
    callback = _lookup(token)
    if callback is None:
        logger.warning(f"send_task_failure: unknown or closed task token {token}")
        return False
    return callback.fail(error, cause)


def pending_tokens() -> list[str]:
    """Tokens of every task currently waiting for a callback."""
    with _lock:
        return list(_pending)


__all__ = [
    "TaskCallback",
    "send_task_success",
    "send_task_failure",
    "pending_tokens",
]
