"""
Pytest configuration and fixtures for pyhodos tests.

Provides reusable fixtures for run logs, event sinks, a recording sleep,
the training pipeline definition, and scripted fake invokers.
"""

import asyncio
import json
import shutil
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
from hypothesis import strategies as st

from pyhodos.core.errors import InvocationFailure
from pyhodos.events import InMemoryEventSink
from pyhodos.invokers import (
    CallbackInvoker,
    InvokerRegistry,
    JobResult,
    PollingInvoker,
    SyncInvoker,
)
from pyhodos.storage import InMemoryRunLog, SqliteRunLog

TRAINING_PIPELINE_FILE = Path(__file__).parent.parent / "examples" / "training_pipeline.json"


def pytest_sessionfinish(session, exitstatus):
    """Force cleanup after all tests complete to prevent CI hanging."""
    import os

    if os.getenv("CI") or os.getenv("GITHUB_ACTIONS"):
        os._exit(exitstatus)


# ==============================================================================
# Fixtures
# ==============================================================================


class RecordingSleep:
    """Stand-in for asyncio.sleep that records waits instead of taking them."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        # Still yield to the loop so other tasks make progress
        await asyncio.sleep(0)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def registry() -> InvokerRegistry:
    return InvokerRegistry()


@pytest.fixture
def event_sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
async def in_memory_run_log() -> AsyncGenerator[InMemoryRunLog, None]:
    """Async in-memory run log fixture with automatic cleanup."""
    run_log = InMemoryRunLog()
    yield run_log
    await run_log.reset()


@pytest.fixture
async def sqlite_memory_run_log() -> AsyncGenerator[SqliteRunLog, None]:
    """Async SQLite in-memory run log fixture with automatic cleanup."""
    run_log = SqliteRunLog(":memory:")
    await run_log.connect()
    yield run_log
    await run_log.close()


@pytest.fixture
def temp_db_path():
    """Temporary database file path with automatic cleanup."""
    tmpdir = Path(tempfile.mkdtemp())
    db_path = tmpdir / "runs.db"
    yield db_path
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
async def sqlite_file_run_log(temp_db_path: Path) -> AsyncGenerator[SqliteRunLog, None]:
    """Async SQLite file-based run log fixture with automatic cleanup."""
    run_log = SqliteRunLog(str(temp_db_path))
    await run_log.connect()
    yield run_log
    await run_log.close()


@pytest.fixture
def training_pipeline_document() -> dict[str, Any]:
    """The fraud detection training pipeline, as an ASL-shaped document."""
    return json.loads(TRAINING_PIPELINE_FILE.read_text())


# ==============================================================================
# Fake invokers
# ==============================================================================


class ScriptedInvoker(SyncInvoker):
    """
    SyncInvoker that plays back a script, one entry per call.

    Each entry is either an exception instance (raised) or a value
    (returned). The last entry repeats once the script runs out.
    """

    def __init__(self, *script: Any):
        self.script = list(script) or [None]
        self.inputs: list[Any] = []

    @property
    def calls(self) -> int:
        return len(self.inputs)

    async def invoke(self, ref: str, input: Any) -> Any:
        self.inputs.append(input)
        step = self.script[min(len(self.inputs), len(self.script)) - 1]
        if isinstance(step, BaseException):
            raise step
        return step


class FakeJobInvoker(PollingInvoker):
    """
    PollingInvoker whose jobs stay RUNNING for running_polls polls, then
    end with final (a JobResult). With running_polls=None jobs never finish.
    """

    def __init__(
        self,
        final: JobResult | None = None,
        running_polls: int | None = 2,
        poll_interval: float = 0.01,
    ):
        self.final = final or JobResult.succeeded({"done": True})
        self.running_polls = running_polls
        self.poll_interval = poll_interval
        self.submitted: list[Any] = []
        self.polls = 0
        self.cancelled: list[Any] = []

    async def submit(self, ref: str, input: Any) -> Any:
        self.submitted.append(input)
        return f"job-{len(self.submitted)}"

    async def poll(self, handle: Any) -> JobResult:
        self.polls += 1
        if self.running_polls is None or self.polls <= self.running_polls:
            return JobResult.running()
        return self.final

    async def cancel(self, handle: Any) -> None:
        self.cancelled.append(handle)


class FakeCallbackInvoker(CallbackInvoker):
    """CallbackInvoker that only records what it was given; tests complete it."""

    def __init__(self):
        self.callbacks = []
        self.inputs: list[Any] = []
        self.cancelled: list[str] = []
        self.started = asyncio.Event()

    async def invoke_async(self, ref: str, input: Any, callback) -> None:
        self.inputs.append(input)
        self.callbacks.append(callback)
        self.started.set()

    async def cancel(self, token: str) -> None:
        self.cancelled.append(token)


def service_error(cause: str = "throttled") -> InvocationFailure:
    return InvocationFailure("Lambda.ServiceException", cause)


# ==============================================================================
# Hypothesis strategies
# ==============================================================================

json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(10**6), max_value=10**6),
    st.text(max_size=10),
)

json_documents = st.recursive(
    json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(min_size=1, max_size=8), children, max_size=4),
    ),
    max_leaves=12,
)

field_names = st.text(
    min_size=1, max_size=10, alphabet=st.characters(categories=("Lu", "Ll"))
)
