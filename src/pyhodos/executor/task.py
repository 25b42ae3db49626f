"""
Task invocation: one attempt of one Task state.

TaskRunner speaks whichever protocol the resolved invoker implements:

- SyncInvoker: await invoke()
- PollingInvoker: submit(), then poll() every poll_interval seconds until a
  terminal JobResult
- CallbackInvoker: invoke_async() with a fresh TaskCallback, then wait
  for the callback (or its token) to be completed

The state's timeout_seconds is a hard deadline for the whole attempt,
measured from its start, whatever the style. When the deadline passes or
the run is cancelled, the external job is asked to stop: CancelHook makes
sure that request is sent at most once per attempt.
"""

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pyhodos.core.errors import InvocationFailure, TimeoutExceeded
from pyhodos.invokers import CallbackInvoker, Invoker, PollingInvoker, SyncInvoker, TaskCallback
from pyhodos.models import JobStatus, TaskState

logger = logging.getLogger(__name__)

__all__ = ["TaskRunner", "CancelHook"]

Sleep = Callable[[float], Awaitable[None]]


class CancelHook:
    """Forward cancellation to an external job exactly once.

    arm() registers the cancel call once the job exists; disarm() forgets
    it once the job has finished on its own. fire() calls it at most once,
    and a failing cancel call is logged, never raised.
    """

    def __init__(self, description: str):
        self._description = description
        self._cancel: Callable[[], Awaitable[None]] | None = None
        self._fired = False

    def arm(self, cancel: Callable[[], Awaitable[None]]) -> None:
        self._cancel = cancel

    def disarm(self) -> None:
        self._cancel = None

    @property
    def fired(self) -> bool:
        return self._fired

    async def fire(self) -> None:
        if self._fired or self._cancel is None:
            return
        self._fired = True
        cancel, self._cancel = self._cancel, None
        logger.debug(f"Forwarding cancellation to {self._description}")
        try:
            await cancel()
        except Exception as e:
            logger.warning(f"Cancel request for {self._description} failed: {e}")


class TaskRunner:
    """
    Run single Task attempts.

    Args:
        sleep: Awaitable used for waits between polls (injected in tests)
    """

    def __init__(self, sleep: Sleep = asyncio.sleep):
        self._sleep = sleep

    async def invoke(self, state_name: str, state: TaskState, invoker: Invoker, input: Any) -> Any:
        """
        Run one attempt and return the raw result.

        The invoker receives its own deep copy of input.

        Raises:
            TimeoutExceeded: The attempt ran past state.timeout_seconds
            InvocationFailure (or any exception raised by the invoker): The attempt failed
            asyncio.CancelledError: The run was cancelled
        """
        hook = CancelHook(f"{state.resource!r} in state {state_name!r}")
        task_input = copy.deepcopy(input)
        try:
            async with asyncio.timeout(state.timeout_seconds) as deadline:
                return await self._dispatch(state.resource, invoker, task_input, hook)
        except TimeoutError as e:
            if not deadline.expired():
                raise
            await hook.fire()
            logger.debug(f"State {state_name!r} timed out after {state.timeout_seconds}s")
            raise TimeoutExceeded(state.timeout_seconds, state_name) from e
        except asyncio.CancelledError:
            await hook.fire()
            raise

    async def _dispatch(self, ref: str, invoker: Invoker, input: Any, hook: CancelHook) -> Any:
        if isinstance(invoker, SyncInvoker):
            return await invoker.invoke(ref, input)
        if isinstance(invoker, PollingInvoker):
            return await self._poll_to_completion(ref, invoker, input, hook)
        if isinstance(invoker, CallbackInvoker):
            return await self._wait_for_callback(ref, invoker, input, hook)
        raise TypeError(f"unsupported invoker type {type(invoker).__name__}")

    async def _poll_to_completion(
        self, ref: str, invoker: PollingInvoker, input: Any, hook: CancelHook
    ) -> Any:
        handle = await invoker.submit(ref, input)
        hook.arm(lambda: invoker.cancel(handle))
        logger.debug(f"Submitted job for {ref!r}: {handle!r}")

        polls = 0
        while True:
            result = await invoker.poll(handle)
            polls += 1
            if result.status == JobStatus.SUCCEEDED:
                hook.disarm()
                logger.debug(f"Job {handle!r} succeeded after {polls} poll(s)")
                return result.output
            if result.status == JobStatus.FAILED:
                hook.disarm()
                raise InvocationFailure(result.error or "States.TaskFailed", result.cause)
            await self._sleep(invoker.poll_interval)

    async def _wait_for_callback(
        self, ref: str, invoker: CallbackInvoker, input: Any, hook: CancelHook
    ) -> Any:
        callback = TaskCallback()
        hook.arm(lambda: invoker.cancel(callback.token))
        try:
            await invoker.invoke_async(ref, input, callback)
            logger.debug(f"Waiting for callback token {callback.token} ({ref!r})")
            output = await callback.wait()
            hook.disarm()
            return output
        except InvocationFailure:
            # Failed through the callback: the job already reported its end
            hook.disarm()
            raise
        finally:
            callback.close()
