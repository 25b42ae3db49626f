"""
Interpreter: the control loop that drives one run through its Definition.

Lifecycle: READY → RUNNING → SUCCEEDED | FAILED

Each iteration enters the current state, dispatches on its type, and
either transitions (resetting the attempt counter) or ends the run:

- Task: invoke, then Retry (same state, attempt + 1) or Catch (transition
  with the error object merged into the document), or merge the result
- Choice: first matching rule, else default, else States.NoChoiceMatched
- Succeed: SUCCEEDED with the current document as output
- Fail: FAILED with the state's error and cause

Fatal to the run: unrouted task errors, States.Runtime data errors, the
run-level deadline, and cancellation. Every fatal path still produces a
FAILED run carrying error class, cause and failing state; nothing escapes
run().

From Dave Cheney: "Only handle an error once"
Invoker errors are classified once (classify()), routed once (Retry, then
Catch), and either absorbed by a Catch rule or turned into the run's
failure. They are never both logged and re-raised.
"""

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pyhodos.core.choice import choose_next
from pyhodos.core.context import RUN_CONTEXT, RunContext
from pyhodos.core.errors import (
    ERROR_RUNTIME,
    ERROR_TIMEOUT,
    Cancelled,
    InvokerNotFound,
    PathError,
    RuntimeFailure,
    UnroutedFailure,
    classify,
    is_retryable,
)
from pyhodos.executor.outcome import RunOutcome
from pyhodos.executor.retry import check_should_retry, error_object, find_catch
from pyhodos.executor.run_state import RunState
from pyhodos.executor.task import Sleep, TaskRunner
from pyhodos.invokers import InvokerRegistry
from pyhodos.models import (
    DISCARD,
    ChoiceState,
    EventType,
    FailState,
    HistoryEvent,
    RunStatus,
    SucceedState,
    TaskState,
)

logger = logging.getLogger(__name__)

__all__ = ["Interpreter", "EventObserver"]

EventObserver = Callable[[HistoryEvent], Awaitable[None]]


def _merge(document: Any, result_path: Any, value: Any) -> Any:
    """Place value into a copy of document according to result_path."""
    if result_path is DISCARD:
        return copy.deepcopy(document)
    if result_path is None:
        return copy.deepcopy(value)
    return result_path.write(document, value)


class Interpreter:
    """
    Drive a single RunState to a terminal status.

    Args:
        run_state: The run to drive (status READY)
        registry: Resolves Task resources to invokers
        sleep: Awaitable used for retry backoff and poll waits
        observers: Async callables receiving every recorded event. A failing
            observer is logged and ignored.
    """

    def __init__(
        self,
        run_state: RunState,
        registry: InvokerRegistry,
        sleep: Sleep = asyncio.sleep,
        observers: Sequence[EventObserver] = (),
    ):
        self.run_state = run_state
        self._registry = registry
        self._sleep = sleep
        self._runner = TaskRunner(sleep)
        self._observers = list(observers)
        self._started = False

    @property
    def definition(self):
        return self.run_state.definition

    async def _emit(self, event_type: EventType, state_name: str | None = None, **details: Any):
        event = self.run_state.record(event_type, state_name, **details)
        for observer in self._observers:
            try:
                await observer(event)
            except Exception as e:
                logger.warning(f"Event observer failed on {event}: {e}")

    async def _start(self) -> None:
        self._started = True
        if not self.run_state.status.is_terminal:
            self.run_state.status = RunStatus.RUNNING
        logger.info(f"Run {self.run_state.run_id} started at {self.definition.start_at!r}")
        await self._emit(EventType.RUN_STARTED, input=copy.deepcopy(self.run_state.input))

    async def run(self, gate: asyncio.Semaphore | None = None) -> RunOutcome:
        """
        Execute the run to completion.

        Args:
            gate: Optional semaphore bounding how many runs execute at once.
                The run stays READY while it waits for a slot.

        Returns:
            Succeeded or Failed. Cancellation of the calling task is turned
            into a Failed outcome (States.Cancelled) instead of propagating.
        """
        state = self.run_state
        acquired = False
        deadline = None
        try:
            if gate is not None:
                await gate.acquire()
                acquired = True
            await self._start()
            async with asyncio.timeout(self.definition.timeout_seconds) as deadline:
                await self._loop()
        except TimeoutError as e:
            if deadline is None or not deadline.expired():
                self._fatal(type(e).__name__, str(e))
            else:
                self._fatal(
                    ERROR_TIMEOUT, f"run exceeded {self.definition.timeout_seconds}s"
                )
        except asyncio.CancelledError:
            cancelled = Cancelled(state.current_state)
            logger.info(f"Run {state.run_id}: {cancelled}")
            self._fatal(cancelled.error, cancelled.cause)
        except (RuntimeFailure, UnroutedFailure) as e:
            self._fatal(e.error, e.cause)
        except Exception as e:
            logger.exception(f"Run {state.run_id} crashed in state {state.current_state!r}")
            self._fatal(ERROR_RUNTIME, f"{type(e).__name__}: {e}")
        finally:
            if acquired:
                gate.release()

        if not self._started:
            await self._start()
        await self._finish()
        return state.outcome()

    def _fatal(self, error: str, cause: str) -> None:
        state = self.run_state
        state.fail(error, cause, state.current_state)

    async def _finish(self) -> None:
        state = self.run_state
        if state.status == RunStatus.SUCCEEDED:
            logger.info(f"Run {state.run_id} succeeded")
            await self._emit(EventType.RUN_SUCCEEDED, output=copy.deepcopy(state.output))
        else:
            logger.error(
                f"Run {state.run_id} failed in state {state.failed_state!r}: "
                f"{state.error}: {state.cause}"
            )
            await self._emit(
                EventType.RUN_FAILED,
                state.failed_state,
                error=state.error,
                cause=state.cause,
            )

    async def _loop(self) -> None:
        state = self.run_state
        while True:
            name = state.current_state
            step = self.definition.state(name)
            await self._emit(
                EventType.STATE_ENTERED,
                name,
                type=step.type_name,
                input=copy.deepcopy(state.document),
            )

            if isinstance(step, TaskState):
                next_state = await self._run_task(name, step)
            elif isinstance(step, ChoiceState):
                next_state = choose_next(step, state.document)
            elif isinstance(step, SucceedState):
                await self._emit(EventType.STATE_EXITED, name, outcome="SUCCEEDED")
                state.succeed(copy.deepcopy(state.document))
                return
            elif isinstance(step, FailState):
                await self._emit(EventType.STATE_EXITED, name, outcome="FAILED")
                state.fail(step.error, step.cause, name)
                return
            else:
                raise RuntimeFailure(f"unsupported state type {type(step).__name__}")

            if next_state is None:
                await self._emit(EventType.STATE_EXITED, name, outcome="SUCCEEDED")
                state.succeed(copy.deepcopy(state.document))
                return

            await self._emit(EventType.STATE_EXITED, name, next=next_state)
            logger.debug(f"Run {state.run_id}: {name!r} -> {next_state!r}")
            state.transition(next_state)
            # A cycle of Choice states never awaits otherwise
            await asyncio.sleep(0)

    async def _run_task(self, name: str, step: TaskState) -> str | None:
        """Run a Task state until it succeeds or its error is routed.

        Returns:
            The next state, or None when the task ends the run

        Raises:
            UnroutedFailure: No Retry or Catch rule handled the error
            RuntimeFailure: Input/result projection or merge failed
        """
        state = self.run_state
        document = state.document

        try:
            invoker = self._registry.resolve(step.resource)
        except InvokerNotFound as e:
            raise RuntimeFailure(str(e)) from e

        try:
            task_input = step.parameters.apply(document) if step.parameters else document
        except PathError as e:
            raise RuntimeFailure(f"parameters of state {name!r}: {e}") from e

        while True:
            token = RUN_CONTEXT.set(RunContext(state.run_id, name, state.attempt))
            try:
                raw = await self._runner.invoke(name, step, invoker, task_input)
            except Exception as exc:
                error, cause = classify(exc)
                logger.debug(f"State {name!r} attempt {state.attempt} failed: {error}: {cause}")

                delay = check_should_retry(step, error, state.attempt, is_retryable(exc))
                if delay is not None:
                    await self._emit(
                        EventType.RETRY_SCHEDULED,
                        name,
                        error=error,
                        cause=cause,
                        attempt=state.attempt,
                        delay_seconds=delay,
                    )
                    await self._sleep(delay)
                    state.attempt += 1
                    continue

                rule = find_catch(step, error)
                if rule is None:
                    raise UnroutedFailure(error, cause, name) from exc

                try:
                    state.document = _merge(document, rule.result_path, error_object(error, cause))
                except PathError as e:
                    raise RuntimeFailure(f"catch result_path of state {name!r}: {e}") from e
                await self._emit(
                    EventType.ERROR_CAUGHT, name, error=error, cause=cause, next=rule.next
                )
                return rule.next
            finally:
                RUN_CONTEXT.reset(token)

            try:
                result = step.result_selector.apply(raw) if step.result_selector else raw
                state.document = _merge(document, step.result_path, result)
            except PathError as e:
                raise RuntimeFailure(f"result of state {name!r}: {e}") from e
            return None if step.end else step.next
