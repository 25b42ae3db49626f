"""RunHandle: the caller's view of a started run."""

import asyncio
import logging

from pyhodos.core.errors import Cancelled
from pyhodos.executor.outcome import RunOutcome
from pyhodos.executor.run_state import RunState
from pyhodos.models import HistoryEvent, RunStatus

logger = logging.getLogger(__name__)


class RunHandle:
    """Handle for observing and controlling a running workflow.

    Composition - handle HAS-A run task, not IS-A run.

    Usage:
        handle = engine.start(definition, {"trainingJob": {...}})
        handle.status()           # RunStatus.RUNNING
        outcome = await handle.result()

        # or give up on it
        handle.cancel()
    """

    def __init__(self, run_state: RunState, task: asyncio.Task):
        self._run_state = run_state
        self._task = task
        self._cancel_requested = False

    @property
    def run_id(self) -> str:
        return self._run_state.run_id

    def status(self) -> RunStatus:
        """Current status of the run."""
        return self._run_state.status

    def current_state(self) -> str | None:
        """Name of the state the run is in (or ended in)."""
        return self._run_state.current_state

    def done(self) -> bool:
        """Return True once the run has finished, including its final events."""
        return self._task.done()

    def cancel(self) -> bool:
        """Request cancellation.

        Any pending wait (backoff, poll, callback) is interrupted, the
        external job is asked to stop, and the run ends FAILED with
        States.Cancelled.

        Returns:
            True if the request was delivered, False if the run had
            already finished or was already being cancelled
        """
        if self._cancel_requested or self._run_state.status.is_terminal or self._task.done():
            return False
        self._cancel_requested = True
        logger.debug(f"Cancelling run {self.run_id}")
        return self._task.cancel()

    async def result(self) -> RunOutcome:
        """Wait for the run to finish and return its outcome.

        Cancelling the caller does not cancel the run; use cancel() for that.
        """
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            # Cancelled before the run task took its first step
            state = self._run_state
            if not state.status.is_terminal:
                state.fail(Cancelled.error, Cancelled.cause, None)
            return state.outcome()

    def history(self) -> list[HistoryEvent]:
        """Snapshot of the run's event history so far."""
        return list(self._run_state.history)

    def __repr__(self) -> str:
        return f"RunHandle(run_id={self.run_id!r}, status={self.status()})"
