"""
Engine: start runs of validated definitions.

Design Patterns:
- Builder: with_event_sink(), with_run_log(), with_sleep(),
  with_max_concurrent_runs() for configuration
- Observer: the event sink and the run log both observe every run's
  event stream; neither can influence the run

Each run executes in its own asyncio task with its own RunState. One
Definition can drive any number of concurrent runs: the engine only ever
reads it.

Usage:
    registry = InvokerRegistry()
    registry.register_function("lambda:normalize", normalize)
    registry.register("sagemaker:train", TrainingJobInvoker(client))

    engine = Engine(registry) \\
        .with_event_sink(LoggingEventSink()) \\
        .with_run_log(run_log)

    handle = engine.start(definition, {"trainingJob": {"hyperparameters": {...}}})
    outcome = await handle.result()

    await engine.shutdown()
"""

import asyncio
import copy
import logging
from typing import Any

from uuid_extensions import uuid7

from pyhodos.core.errors import StorageError, ValidationError
from pyhodos.definition import Definition
from pyhodos.events import EventSink
from pyhodos.executor.handle import RunHandle
from pyhodos.executor.interpreter import Interpreter
from pyhodos.executor.outcome import RunOutcome
from pyhodos.executor.run_state import RunState
from pyhodos.executor.task import Sleep
from pyhodos.invokers import InvokerRegistry
from pyhodos.models import EventType, HistoryEvent
from pyhodos.storage import RunLog

logger = logging.getLogger(__name__)

__all__ = ["Engine", "start", "execute"]


class Engine:
    """Start and track workflow runs.

    Default configuration works out of the box: real asyncio.sleep, no
    event sink, no run log, no concurrency limit.
    """

    def __init__(self, registry: InvokerRegistry):
        """Initialize the engine with the registry that resolves Task resources.

        All dependencies passed explicitly, no globals.
        """
        self._registry = registry
        self._event_sink: EventSink | None = None
        self._run_log: RunLog | None = None
        self._sleep: Sleep = asyncio.sleep
        self._max_concurrent_runs: asyncio.Semaphore | None = None

        self._runs: dict[str, RunHandle] = {}

        # Track background tasks to prevent garbage collection
        self._background_tasks: set[asyncio.Task] = set()

    def with_event_sink(self, sink: EventSink) -> "Engine":
        """Send every run's events to sink (builder pattern).

        Returns:
            self for method chaining
        """
        self._event_sink = sink
        return self

    def with_run_log(self, run_log: RunLog) -> "Engine":
        """Persist run records and events to run_log (builder pattern).

        The run log must already be connected. Persistence failures are
        logged and never change a run's outcome.

        Returns:
            self for method chaining
        """
        self._run_log = run_log
        return self

    def with_sleep(self, sleep: Sleep) -> "Engine":
        """Replace asyncio.sleep for retry backoff and poll waits (builder pattern).

        Tests use this to record backoff schedules without waiting.

        Returns:
            self for method chaining
        """
        self._sleep = sleep
        return self

    def with_max_concurrent_runs(self, max_concurrent: int) -> "Engine":
        """Limit how many runs execute at once (builder pattern).

        Runs started beyond the limit stay READY until a slot frees up.

        Returns:
            self for method chaining
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent_runs = asyncio.Semaphore(max_concurrent)
        return self

    def start(
        self, definition: Definition, document: Any = None, *, run_id: str | None = None
    ) -> RunHandle:
        """Start a run and return its handle immediately.

        Must be called from a running event loop. The document is deep
        copied, so the caller may reuse or mutate it freely.

        Raises:
            ValidationError: If definition is not a Definition or any Task
                resource has no registered invoker
        """
        if not isinstance(definition, Definition):
            raise ValidationError(f"expected a Definition, got {type(definition).__name__}")

        missing = self._registry.missing(definition.resources())
        if missing:
            raise ValidationError(
                [f"no invoker registered for resource {name!r}" for name in missing]
            )

        run_state = RunState(
            run_id=run_id or str(uuid7()),
            definition=definition,
            input=copy.deepcopy(document) if document is not None else {},
        )
        interpreter = Interpreter(
            run_state,
            self._registry,
            sleep=self._sleep,
            observers=self._observers_for(run_state),
        )

        task = asyncio.create_task(
            interpreter.run(self._max_concurrent_runs), name=f"pyhodos-run-{run_state.run_id}"
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

        handle = RunHandle(run_state, task)
        self._runs[run_state.run_id] = handle
        task.add_done_callback(lambda _: self._forget(handle))
        logger.debug(f"Scheduled run {run_state.run_id} of definition {definition.fingerprint()}")
        return handle

    async def execute(self, definition: Definition, document: Any = None) -> RunOutcome:
        """Start a run and wait for its outcome."""
        return await self.start(definition, document).result()

    def get(self, run_id: str) -> RunHandle | None:
        """Look up an unfinished run started by this engine.

        Finished runs are dropped; keep the handle returned by start()
        or read the run log to inspect them.
        """
        return self._runs.get(run_id)

    def _forget(self, handle: RunHandle) -> None:
        if self._runs.get(handle.run_id) is handle:
            del self._runs[handle.run_id]

    def active_runs(self) -> list[RunHandle]:
        """Handles of runs that have not finished yet."""
        return [handle for handle in self._runs.values() if not handle.done()]

    def _observers_for(self, run_state: RunState):
        observers = []
        if self._event_sink is not None:
            observers.append(self._event_sink.emit)
        if self._run_log is not None:
            run_log = self._run_log

            async def persist(event: HistoryEvent) -> None:
                try:
                    await run_log.append_event(event)
                    if event.event_type == EventType.RUN_STARTED or event.event_type.is_terminal:
                        await run_log.save_run(run_state.to_record())
                except StorageError as e:
                    logger.warning(f"Run log write failed for run {run_state.run_id}: {e}")

            observers.append(persist)
        return observers

    async def shutdown(self) -> None:
        """Cancel every unfinished run and wait for all of them.

        Explicit shutdown, not relying on GC. Cancelled runs end FAILED
        with States.Cancelled, like a RunHandle.cancel().
        """
        active = self.active_runs()
        if active:
            logger.info(f"Engine shutting down, cancelling {len(active)} run(s)")
        for handle in active:
            handle.cancel()

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        logger.info("Engine shut down")


def start(definition: Definition, document: Any, registry: InvokerRegistry) -> RunHandle:
    """Start a run on a default Engine."""
    return Engine(registry).start(definition, document)


async def execute(definition: Definition, document: Any, registry: InvokerRegistry) -> RunOutcome:
    """Run a definition on a default Engine and wait for its outcome."""
    return await Engine(registry).execute(definition, document)
