"""
InvokerRegistry: resolve opaque invocation references to invokers.

A Task state names its work with a resource string ("lambda:normalize",
"glue:data-process"...). The engine never interprets that string; the host
application decides what it means by registering an invoker for it.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from pyhodos.core.errors import InvokerNotFound
from pyhodos.invokers.base import CallbackInvoker, Invoker, PollingInvoker, SyncInvoker
from pyhodos.invokers.function import FunctionInvoker

logger = logging.getLogger(__name__)

_INVOKER_TYPES = (SyncInvoker, PollingInvoker, CallbackInvoker)


class InvokerRegistry:
    """Registry mapping resource references to their invokers.

    Example:
        ```python
        registry = InvokerRegistry()
        registry.register("sagemaker:train", TrainingJobInvoker(client))
        registry.register_function("lambda:normalize", normalize_parameters)

        registry.resolve("sagemaker:train")  # TrainingJobInvoker
        registry.resolve("unknown")          # raises InvokerNotFound
        ```
    """

    def __init__(self):
        """Create a new empty invoker registry."""
        self._invokers: dict[str, Invoker] = {}

    def register(self, resource: str, invoker: Invoker) -> "InvokerRegistry":
        """Register an invoker for a resource reference, replacing any previous one.

        Raises:
            TypeError: If invoker implements none of the invoker interfaces
        """
        if not isinstance(invoker, _INVOKER_TYPES):
            raise TypeError(
                f"invoker for {resource!r} must be a SyncInvoker, PollingInvoker "
                f"or CallbackInvoker, got {type(invoker).__name__}"
            )
        if resource in self._invokers:
            logger.debug(f"Replacing invoker for resource: {resource}")
        self._invokers[resource] = invoker
        logger.debug(f"Registered invoker for resource: {resource}")
        return self

    def register_function(self, resource: str, fn: Callable[[Any], Any]) -> "InvokerRegistry":
        """Register a plain sync or async callable as a SyncInvoker."""
        return self.register(resource, FunctionInvoker(fn))

    def resolve(self, resource: str) -> Invoker:
        """Get the invoker for a resource reference.

        Raises:
            InvokerNotFound: If nothing is registered for resource
        """
        try:
            return self._invokers[resource]
        except KeyError:
            raise InvokerNotFound(resource) from None

    def missing(self, resources: Iterable[str]) -> list[str]:
        """Resource references from resources with no registered invoker, sorted."""
        return sorted(set(resources) - set(self._invokers))

    def __contains__(self, resource: object) -> bool:
        return resource in self._invokers

    def __len__(self) -> int:
        """Returns the number of registered resources."""
        return len(self._invokers)

    def is_empty(self) -> bool:
        """Returns True if no invokers are registered."""
        return len(self._invokers) == 0
