"""
Workflow definitions: construction, validation, loading and dumping.

A Definition is validated when it is built and never changes afterwards,
so the interpreter can trust every name, target and path it holds.
"""

from pyhodos.definition.loader import dump_definition, load_definition, load_definition_json
from pyhodos.definition.model import Definition
from pyhodos.definition.validation import is_terminal, validate

__all__ = [
    "Definition",
    "validate",
    "is_terminal",
    "load_definition",
    "load_definition_json",
    "dump_definition",
]
