"""Wire codes and column format tags.

The string values of :class:`Operator` and :class:`Order` are written
verbatim into serialized query paths and must never change.
"""

from __future__ import annotations

from enum import StrEnum


class Operator(StrEnum):
    """Filter operator codes."""

    LESS_THAN = "lt"
    LESS_THAN_OR_EQUAL = "lte"
    EQUAL = "eq"
    NOT_EQUAL = "neq"
    GREATER_THAN_OR_EQUAL = "gte"
    GREATER_THAN = "gt"
    BETWEEN = "between"
    CONTAIN = "contain"
    NOT_CONTAIN = "notcontain"
    REGEXP = "regexp"


class Order(StrEnum):
    """Sort order codes."""

    ASCENDING = "asc"
    DESCENDING = "desc"


class Format(StrEnum):
    """Column format tags that drive value (de)serialization."""

    STRING = "string"
    DATE = "date"
    DECIMAL = "decimal"
    NUMBER = "number"
    INTEGER = "integer"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"
    NULL = "null"
    OBJECT = "object"
    ARRAY = "array"


# --- Operator classes ---

COMPARISON_OPERATORS: frozenset[str] = frozenset(
    {
        Operator.LESS_THAN,
        Operator.LESS_THAN_OR_EQUAL,
        Operator.EQUAL,
        Operator.NOT_EQUAL,
        Operator.GREATER_THAN_OR_EQUAL,
        Operator.GREATER_THAN,
    }
)

SEQUENCE_OPERATORS: frozenset[str] = frozenset(
    {
        Operator.BETWEEN,
        Operator.CONTAIN,
        Operator.NOT_CONTAIN,
    }
)
