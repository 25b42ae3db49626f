"""
Typed addressing into workflow documents.

A Path is parsed once, when a definition is built, and then used for every
read and write at run time. Projections replace string templating: a
template such as {"ModelArtifact.$": "$.training.artifact", "Mode": "Single"}
is compiled into path references and literals, so a malformed reference is
a definition error instead of a malformed payload at run time.

Grammar:
    $                   the whole document
    $.name              object field
    $[0]                list index
    $['n-hidden']       object field with any characters
    $.a.b[2]["c"]       any combination of the above

Design: Copy on write
Writes never mutate their input. They return a new document so that a
document shared by concurrent runs (or still held by an invoker) is never
changed underneath its owner.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any

from pyhodos.core.errors import PathError

__all__ = ["Path", "Projection", "ROOT"]

_NAME = re.compile(r"[^.\[\]'\"\s]+")
_INDEX = re.compile(r"\[(\d+)\]")
_QUOTED = re.compile(r"""\[(?:'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)")\]""")

_MISSING = object()


class Path:
    """
    A parsed, immutable document address.

    Usage:
        path = Path("$.trainingJob.hyperparameters['n-hidden']")
        hidden = path.read(document)
        updated = Path("$.modelOutput").write(document, {"ModelArn": arn})
    """

    __slots__ = ("_expression", "_segments")

    def __init__(self, expression: str):
        self._expression = expression
        self._segments = self._parse(expression)

    @staticmethod
    def _parse(expression: str) -> tuple[str | int, ...]:
        if not isinstance(expression, str):
            raise PathError(f"path must be a string, got {type(expression).__name__}")
        if not expression.startswith("$"):
            raise PathError(f"path {expression!r} must start with '$'")

        segments: list[str | int] = []
        pos = 1
        while pos < len(expression):
            char = expression[pos]
            if char == ".":
                match = _NAME.match(expression, pos + 1)
                if match is None:
                    raise PathError(f"path {expression!r}: expected field name at {pos + 1}")
                segments.append(match.group(0))
                pos = match.end()
            elif char == "[":
                match = _INDEX.match(expression, pos)
                if match is not None:
                    segments.append(int(match.group(1)))
                    pos = match.end()
                    continue
                match = _QUOTED.match(expression, pos)
                if match is None:
                    raise PathError(f"path {expression!r}: malformed bracket at {pos}")
                raw = match.group(1) if match.group(1) is not None else match.group(2)
                segments.append(re.sub(r"\\(.)", r"\1", raw))
                pos = match.end()
            else:
                raise PathError(f"path {expression!r}: unexpected {char!r} at {pos}")
        return tuple(segments)

    @property
    def expression(self) -> str:
        return self._expression

    @property
    def segments(self) -> tuple[str | int, ...]:
        return self._segments

    @property
    def is_root(self) -> bool:
        return not self._segments

    def _lookup(self, document: Any) -> Any:
        current = document
        for segment in self._segments:
            if isinstance(segment, int):
                if isinstance(current, list) and segment < len(current):
                    current = current[segment]
                    continue
                return _MISSING
            if isinstance(current, Mapping) and segment in current:
                current = current[segment]
                continue
            return _MISSING
        return current

    def read(self, document: Any) -> Any:
        """
        Return the value at this path.

        Raises:
            PathError: If any segment does not exist
        """
        value = self._lookup(document)
        if value is _MISSING:
            raise PathError(f"path {self._expression!r} not found in document")
        return value

    def exists(self, document: Any) -> bool:
        """Check whether the path resolves (a None value still exists)."""
        return self._lookup(document) is not _MISSING

    def write(self, document: Any, value: Any) -> Any:
        """
        Return a copy of document with value placed at this path.

        Missing intermediate objects are created. The rest of the
        document is preserved; writing to $ replaces it entirely.

        Raises:
            PathError: If an intermediate value is not an object (or a list
                for an index segment)
        """
        if self.is_root:
            return copy.deepcopy(value)

        result: Any
        if isinstance(self._segments[0], int) and isinstance(document, list):
            result = copy.deepcopy(document)
        elif isinstance(self._segments[0], str) and isinstance(document, Mapping):
            result = copy.deepcopy(dict(document))
        else:
            raise PathError(
                f"cannot write {self._expression!r} into a {type(document).__name__} document"
            )

        current: Any = result
        for position, segment in enumerate(self._segments):
            last = position == len(self._segments) - 1
            if isinstance(segment, int):
                if not isinstance(current, list) or segment >= len(current):
                    raise PathError(f"path {self._expression!r}: index {segment} out of range")
                if last:
                    current[segment] = copy.deepcopy(value)
                else:
                    current = current[segment]
                continue

            if not isinstance(current, dict):
                raise PathError(
                    f"path {self._expression!r}: cannot set field {segment!r} "
                    f"on a {type(current).__name__}"
                )
            if last:
                current[segment] = copy.deepcopy(value)
            else:
                if segment not in current or current[segment] is None:
                    current[segment] = {}
                current = current[segment]
        return result

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Path):
            return self._segments == other._segments
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._segments)

    def __repr__(self) -> str:
        return f"Path({self._expression!r})"

    def __str__(self) -> str:
        return self._expression


ROOT = Path("$")


class Projection:
    """
    Build a new object from a source document using a compiled template.

    Keys ending in ".$" take their value from the path they name; every
    other key is copied as a literal. Nested objects are projected
    recursively.

    Example:
        selector = Projection({"TrainingJobName.$": "$.TrainingJobName",
                               "Source": "training"})
        selector.apply({"TrainingJobName": "job-1", "Extra": 1})
        # {"TrainingJobName": "job-1", "Source": "training"}
    """

    __slots__ = ("_template", "_fields")

    def __init__(self, template: Mapping[str, Any]):
        if not isinstance(template, Mapping):
            raise PathError(f"projection template must be an object, got {type(template).__name__}")
        self._template = copy.deepcopy(dict(template))
        self._fields = tuple(self._compile(key, value) for key, value in template.items())

    @staticmethod
    def _compile(key: str, value: Any) -> tuple[str, str, Any]:
        if key.endswith(".$"):
            if not isinstance(value, str):
                raise PathError(f"projection field {key!r} must name a path")
            return key[:-2], "path", Path(value)
        if isinstance(value, Mapping):
            return key, "nested", Projection(value)
        return key, "literal", copy.deepcopy(value)

    @property
    def template(self) -> dict[str, Any]:
        """The template this projection was compiled from (a copy)."""
        return copy.deepcopy(self._template)

    def paths(self) -> list[Path]:
        """Every path referenced by this projection, nested ones included."""
        found: list[Path] = []
        for _, kind, value in self._fields:
            if kind == "path":
                found.append(value)
            elif kind == "nested":
                found.extend(value.paths())
        return found

    def apply(self, source: Any) -> dict[str, Any]:
        """
        Evaluate the projection against source.

        Raises:
            PathError: If a referenced path does not exist in source
        """
        result: dict[str, Any] = {}
        for key, kind, value in self._fields:
            if kind == "path":
                result[key] = copy.deepcopy(value.read(source))
            elif kind == "nested":
                result[key] = value.apply(source)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Projection):
            return self._template == other._template
        return NotImplemented

    def __hash__(self) -> int:
        return hash(repr(sorted(self._template.items(), key=lambda item: item[0])))

    def __repr__(self) -> str:
        return f"Projection({self._template!r})"
