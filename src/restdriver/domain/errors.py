"""Exception taxonomy for query serialization and the driver.

INVARIANT: Every codec failure is fatal. Nothing is partially decoded or
silently skipped; callers get one of these exceptions synchronously.
"""

from __future__ import annotations


class QuerySerializationError(ValueError):
    """Base class for all query path (de)serialization failures."""

    code = "INVALID_QUERY"


class InvalidPrefixError(QuerySerializationError):
    """A section decoder did not find its magic prefix token."""

    code = "INVALID_PREFIX"


class UnsupportedSerializationError(QuerySerializationError):
    """The next token is not a known section prefix."""

    code = "UNSUPPORTED_SERIALIZATION"


class InvalidPathError(QuerySerializationError):
    """A property path does not resolve against the entity model."""

    code = "INVALID_PATH"


class InvalidOperatorError(QuerySerializationError):
    """An operator code is not one of :class:`~restdriver.domain.types.Operator`."""

    code = "INVALID_OPERATOR"


class InvalidOrderError(QuerySerializationError):
    """A sort order code is not one of :class:`~restdriver.domain.types.Order`."""

    code = "INVALID_ORDER"


class InvalidOperandError(QuerySerializationError, TypeError):
    """An operation value does not have the shape its operator requires."""

    code = "INVALID_OPERAND"


class InvalidValueError(QuerySerializationError):
    """A token cannot be percent-decoded or converted to the column type."""

    code = "INVALID_VALUE"


class TruncatedInputError(QuerySerializationError):
    """Decoding needed more tokens than the path contains."""

    code = "TRUNCATED_INPUT"


class UnknownEntityError(LookupError):
    """The entity model is not registered in the schema registry."""

    code = "UNKNOWN_ENTITY"


class TransportError(RuntimeError):
    """The HTTP exchange failed or returned an unacceptable response."""

    code = "TRANSPORT_ERROR"

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
