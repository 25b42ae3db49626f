"""
Adapt plain callables into SyncInvokers.

The quickest way to wire a workflow to real work: register a function.
Coroutine functions are awaited on the event loop; ordinary functions run
in a worker thread (asyncio.to_thread), so a blocking SDK call does not
stall other runs. contextvars are copied into the thread, so
get_current_run() still works inside the function.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pyhodos.invokers.base import SyncInvoker

logger = logging.getLogger(__name__)


class FunctionInvoker(SyncInvoker):
    """
    SyncInvoker backed by fn(input) -> output.

    Example:
        async def check_endpoint(doc):
            return {"Endpoint": {"frauddetection": False}}

        registry.register("lambda:check-endpoint", FunctionInvoker(check_endpoint))
    """

    def __init__(self, fn: Callable[[Any], Any], *, in_thread: bool = True):
        self.fn = fn
        self.in_thread = in_thread
        self._is_async = inspect.iscoroutinefunction(fn)

    async def invoke(self, ref: str, input: Any) -> Any:
        if self._is_async:
            return await self.fn(input)
        if self.in_thread:
            result = await asyncio.to_thread(self.fn, input)
        else:
            result = self.fn(input)
        # Sync wrappers around coroutine functions (lambdas, partials)
        if inspect.isawaitable(result):
            return await result
        return result

    def __repr__(self) -> str:
        name = getattr(self.fn, "__qualname__", repr(self.fn))
        return f"FunctionInvoker({name})"
