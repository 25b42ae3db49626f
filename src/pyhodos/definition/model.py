"""
Workflow Definition: the immutable description of a state machine.

Design: Validate at construction
A Definition validates itself in __post_init__, so a malformed workflow
is rejected when it is built and can never begin executing. After
construction it is read-only (frozen dataclass over a read-only mapping)
and may be shared by any number of concurrent runs without locking.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from functools import cached_property
from types import MappingProxyType

import xxhash

from pyhodos.definition.validation import validate
from pyhodos.models import State, TaskState


@dataclass(frozen=True)
class Definition:
    """
    A validated workflow definition.

    Usage:
        definition = Definition(
            start_at="Train",
            states={
                "Train": TaskState(resource="train", next="Done"),
                "Done": SucceedState(),
            },
        )

    Raises:
        ValidationError: If the definition is malformed
    """

    start_at: str
    """Name of the first state entered by every run."""

    states: Mapping[str, State]
    """State name -> state specification. Order carries no meaning."""

    comment: str | None = None

    timeout_seconds: float | None = None
    """Optional deadline for a whole run, measured from its start."""

    def __post_init__(self):
        object.__setattr__(self, "states", MappingProxyType(dict(self.states)))
        validate(self)

    def state(self, name: str) -> State:
        """Look up a state by name (KeyError if absent)."""
        return self.states[name]

    def resources(self) -> set[str]:
        """All invocation references used by Task states."""
        return {state.resource for state in self.states.values() if isinstance(state, TaskState)}

    @cached_property
    def _fingerprint(self) -> str:
        from pyhodos.definition.loader import dump_definition

        canonical = json.dumps(dump_definition(self), sort_keys=True, default=str)
        return xxhash.xxh64(canonical.encode("utf-8")).hexdigest()

    def fingerprint(self) -> str:
        """
        Stable digest of the definition's content.

        Two definitions with the same states, rules and start state have the
        same fingerprint regardless of state order. Recorded on every run
        record so a postmortem can tell which definition drove a run.
        """
        return self._fingerprint

    def __hash__(self) -> int:
        return hash(self.fingerprint())

    def __repr__(self) -> str:
        return f"Definition(start_at={self.start_at!r}, states={len(self.states)})"
