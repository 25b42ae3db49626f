"""Choice rule model.

A ChoiceRule reads one value from the document and compares it with a
literal operand. Rules are evaluated top to bottom by
pyhodos.core.choice; the first satisfied rule picks the next state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pyhodos.core.paths import Path


class Comparator(Enum):
    """Comparison operators, named the way workflow definitions spell them."""

    STRING_EQUALS = "StringEquals"
    STRING_LESS_THAN = "StringLessThan"
    STRING_GREATER_THAN = "StringGreaterThan"
    STRING_LESS_THAN_EQUALS = "StringLessThanEquals"
    STRING_GREATER_THAN_EQUALS = "StringGreaterThanEquals"
    NUMERIC_EQUALS = "NumericEquals"
    NUMERIC_LESS_THAN = "NumericLessThan"
    NUMERIC_GREATER_THAN = "NumericGreaterThan"
    NUMERIC_LESS_THAN_EQUALS = "NumericLessThanEquals"
    NUMERIC_GREATER_THAN_EQUALS = "NumericGreaterThanEquals"
    BOOLEAN_EQUALS = "BooleanEquals"
    IS_PRESENT = "IsPresent"
    IS_NULL = "IsNull"
    IS_STRING = "IsString"
    IS_NUMERIC = "IsNumeric"
    IS_BOOLEAN = "IsBoolean"

    @property
    def is_string(self) -> bool:
        return self.value.startswith("String")

    @property
    def is_numeric(self) -> bool:
        return self.value.startswith("Numeric")

    @property
    def is_type_test(self) -> bool:
        """True for comparators whose operand is a boolean flag (IsPresent, IsNull...)."""
        return self.value.startswith("Is")

    @classmethod
    def from_name(cls, name: str) -> Comparator:
        """Look up a comparator by its definition spelling.

        Raises:
            ValueError: If the name is not a known comparator
        """
        return cls(name)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ChoiceRule:
    """
    One branch of a Choice state.

    Attributes:
        path: Where to read the compared value in the document
        comparator: How to compare it
        operand: Literal right-hand side (a bool flag for the Is* tests)
        next: State entered when the rule matches
    """

    path: Path
    comparator: Comparator
    operand: Any
    next: str

    def __str__(self) -> str:
        return f"{self.path} {self.comparator} {self.operand!r} -> {self.next}"
