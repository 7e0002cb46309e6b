"""QueryCodec — packs a structured query into one URL path and back.

Wire grammar (tokens joined by ``/``)::

    query
      fields <N> <path>...                                   viewed fields
      pre|post <rules> {<ops> {<path> <op> <payload>}...}... match rules
      sort <N> {<path> <order>}...                           sort order
      limit <start> <count>                                  pagination

Encoding always emits the sections in the order above. Decoding is
prefix-driven: it peeks at one token, dispatches to the section decoder,
and that decoder consumes exactly the tokens its encoder produced.

INVARIANT: Magic prefixes, operator codes, and order codes are wire
literals shared with existing servers. Every dynamic value is
percent-encoded; paths and counts are written raw.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from restdriver.codec.values import decode_token, encode_token, pack_value, parse_int, unpack_value
from restdriver.domain.errors import (
    InvalidOperandError,
    InvalidOperatorError,
    InvalidOrderError,
    InvalidPathError,
    InvalidPrefixError,
    InvalidValueError,
    TruncatedInputError,
    UnsupportedSerializationError,
)
from restdriver.domain.query import (
    AnyRule,
    DecodedQuery,
    Limit,
    Match,
    Operation,
    Query,
    RegExpLiteral,
    SingleRule,
)
from restdriver.domain.types import COMPARISON_OPERATORS, SEQUENCE_OPERATORS, Operator, Order
from restdriver.schema.registry import Column, Entity, PathResolver

logger = logging.getLogger(__name__)

QUERY_PREFIX = "query"
FIELDS_PREFIX = "fields"
PRE_MATCH_PREFIX = "pre"
POST_MATCH_PREFIX = "post"
SORT_PREFIX = "sort"
LIMIT_PREFIX = "limit"


def split_path(url: str) -> list[str]:
    """Split a query path into raw tokens.

    Strips surrounding whitespace and a leading ``./`` or ``/``. Empty
    tokens inside the path are kept: an empty string is a legal value.
    """
    path = url.strip()
    if path.startswith("./"):
        path = path[2:]
    path = path.lstrip("/")
    if not path:
        return []
    return path.split("/")


class TokenReader:
    """Left-to-right cursor over path tokens with one token of lookahead."""

    def __init__(self, tokens: Sequence[str]) -> None:
        self._tokens = list(tokens)
        self._index = 0

    @property
    def remaining(self) -> int:
        return len(self._tokens) - self._index

    def __bool__(self) -> bool:
        return self.remaining > 0

    def peek(self) -> str | None:
        if self._index >= len(self._tokens):
            return None
        return self._tokens[self._index]

    def pop(self, what: str) -> str:
        """Consume the next token; *what* names it in the error message."""
        if self._index >= len(self._tokens):
            msg = f"Unexpected end of query path while reading {what}."
            raise TruncatedInputError(msg)
        token = self._tokens[self._index]
        self._index += 1
        return token

    def pop_count(self, what: str) -> int:
        """Consume a non-negative element count."""
        token = self.pop(what)
        count = parse_int(token)
        if count < 0:
            msg = f"Invalid {what} '{token}'."
            raise InvalidValueError(msg)
        return count

    def expect(self, prefix: str, what: str) -> None:
        if self.pop(f"the {what} prefix") != prefix:
            msg = f"Invalid magic prefix for the given array of {what}."
            raise InvalidPrefixError(msg)


class QueryCodec:
    """Serializes :class:`Query` objects to URL paths and parses them back.

    Args:
        resolver: Schema registry used to validate every property path and
            to find the leaf column whose formats drive value conversion.
    """

    def __init__(self, resolver: PathResolver) -> None:
        self._resolver = resolver

    def _resolve(self, model: str | Entity, path: str, kind: str) -> Column:
        columns = self._resolver.resolve_path_columns(model, path)
        if not columns:
            msg = f"Invalid {kind} path '{path}' for the given model."
            raise InvalidPathError(msg)
        return columns[-1]

    # ------------------------------------------------------------------
    # fields
    # ------------------------------------------------------------------

    def _pack_fields(self, fields: Sequence[str]) -> list[str]:
        # The count is taken before de-duplication; servers expect it that way.
        unique = list(dict.fromkeys(fields))
        if len(unique) != len(fields):
            logger.warning(
                "Viewed fields contain duplicates; declared count %d exceeds %d paths",
                len(fields),
                len(unique),
            )
        return [FIELDS_PREFIX, str(len(fields)), *unique]

    def _unpack_fields(self, reader: TokenReader) -> list[str]:
        reader.expect(FIELDS_PREFIX, "viewed fields")
        length = reader.pop_count("viewed fields count")
        if reader.remaining < length:
            msg = "Invalid size for the given array of viewed fields."
            raise TruncatedInputError(msg)
        return [reader.pop("viewed field") for _ in range(length)]

    # ------------------------------------------------------------------
    # match rules
    # ------------------------------------------------------------------

    @staticmethod
    def _operator(code: str, path: str) -> Operator:
        try:
            return Operator(code)
        except ValueError:
            msg = f"Invalid operator '{code}' for the given path '{path}'."
            raise InvalidOperatorError(msg) from None

    @staticmethod
    def _regexp(value: Any, path: str) -> RegExpLiteral:
        if isinstance(value, RegExpLiteral):
            return value
        if isinstance(value, re.Pattern):
            return RegExpLiteral.from_pattern(value)
        if (
            isinstance(value, (list, tuple))
            and len(value) == 2
            and all(isinstance(part, str) for part in value)
        ):
            return RegExpLiteral(pattern=value[0], flags=value[1])
        msg = f"Match value for the given path '{path}' should be a regular expression."
        raise InvalidOperandError(msg)

    def _pack_operation(
        self,
        tokens: list[str],
        column: Column,
        path: str,
        operation: Operation,
    ) -> None:
        operator = self._operator(operation.operator, path)
        value = operation.value
        tokens.extend([path, operator.value])
        if operator in COMPARISON_OPERATORS:
            tokens.append(encode_token(pack_value(column, value)))
        elif operator in SEQUENCE_OPERATORS:
            if not isinstance(value, (list, tuple)):
                msg = f"Match value for the given path '{path}' should be a list."
                raise InvalidOperandError(msg)
            tokens.append(str(len(value)))
            tokens.extend(encode_token(pack_value(column, item)) for item in value)
        else:
            literal = self._regexp(value, path)
            tokens.append(encode_token(literal.pattern))
            tokens.append(encode_token(literal.flags))

    def _pack_match_rules(
        self,
        prefix: str,
        model: str | Entity,
        rules: SingleRule | AnyRule,
    ) -> list[str]:
        body: list[str] = []
        counter = 0
        for match in rules.rules:
            operations: list[str] = []
            for path, operation in match.items():
                column = self._resolve(model, path, "matching")
                self._pack_operation(operations, column, path, operation)
            # Rules without operations are dropped, not counted.
            if match:
                body.extend([str(len(match)), *operations])
                counter += 1
        return [prefix, str(counter), *body]

    def _unpack_operation(
        self,
        column: Column,
        path: str,
        code: str,
        reader: TokenReader,
    ) -> Operation:
        operator = self._operator(code, path)
        if operator in COMPARISON_OPERATORS:
            value = unpack_value(column, decode_token(reader.pop("match value")))
            return Operation(operator=operator, value=value)
        if operator in SEQUENCE_OPERATORS:
            values = [
                unpack_value(column, decode_token(reader.pop("match value")))
                for _ in range(reader.pop_count("match value count"))
            ]
            return Operation(operator=operator, value=values)
        pattern = decode_token(reader.pop("regular expression"))
        flags = decode_token(reader.pop("regular expression flags"))
        return Operation(operator=operator, value=RegExpLiteral(pattern=pattern, flags=flags))

    def _unpack_match_rules(
        self,
        prefix: str,
        model: str | Entity,
        reader: TokenReader,
    ) -> SingleRule | AnyRule | None:
        reader.expect(prefix, "matching lists")
        rules: list[Match] = []
        for _ in range(reader.pop_count("rule count")):
            match: Match = {}
            for _ in range(reader.pop_count("operation count")):
                path = reader.pop("matching path")
                column = self._resolve(model, path, "matching")
                code = reader.pop("operator")
                match[path] = self._unpack_operation(column, path, code, reader)
            rules.append(match)
        if not rules:
            return None
        if len(rules) == 1:
            return SingleRule(rule=rules[0])
        return AnyRule(rules=rules)

    # ------------------------------------------------------------------
    # sort
    # ------------------------------------------------------------------

    @staticmethod
    def _order(code: str, path: str) -> Order:
        try:
            return Order(code)
        except ValueError:
            msg = f"Invalid sorting order '{code}' for the given path '{path}'."
            raise InvalidOrderError(msg) from None

    def _pack_sort(self, model: str | Entity, sort: Mapping[str, str]) -> list[str]:
        tokens: list[str] = []
        for path, code in sort.items():
            self._resolve(model, path, "sorting")
            tokens.extend([path, self._order(code, path).value])
        return [SORT_PREFIX, str(len(sort)), *tokens]

    def _unpack_sort(self, model: str | Entity, reader: TokenReader) -> dict[str, str]:
        reader.expect(SORT_PREFIX, "sorting list")
        sort: dict[str, str] = {}
        for _ in range(reader.pop_count("sorting count")):
            path = reader.pop("sorting path")
            code = reader.pop("sorting order")
            self._resolve(model, path, "sorting")
            sort[path] = self._order(code, path).value
        return sort

    # ------------------------------------------------------------------
    # limit
    # ------------------------------------------------------------------

    @staticmethod
    def _pack_limit(limit: Limit) -> list[str]:
        return [LIMIT_PREFIX, str(limit.start), str(limit.count)]

    @staticmethod
    def _unpack_limit(reader: TokenReader) -> Limit:
        reader.expect(LIMIT_PREFIX, "limits")

        def lenient(token: str | None) -> int:
            # Absent, non-numeric, and negative values all read as 0.
            if token is None:
                return 0
            try:
                return max(0, parse_int(token))
            except InvalidValueError:
                return 0

        start = lenient(reader.pop("limit start") if reader else None)
        count = lenient(reader.pop("limit count") if reader else None)
        return Limit(start=start, count=count)

    # ------------------------------------------------------------------
    # public surface
    # ------------------------------------------------------------------

    def to_url(
        self,
        model: str | Entity,
        query: Query | Mapping[str, Any] | None = None,
        fields: Sequence[str] | None = None,
    ) -> str:
        """Build the query path for *model*.

        Returns an empty string when there are no fields and no query
        sections to emit.

        Raises:
            QuerySerializationError: A path, operator, order, or operand is invalid.
        """
        if isinstance(query, Mapping):
            query = Query.model_validate(query)

        tokens: list[str] = []
        if fields:
            tokens.extend(self._pack_fields(fields))
        if query is not None:
            if query.pre is not None:
                tokens.extend(self._pack_match_rules(PRE_MATCH_PREFIX, model, query.pre))
            if query.post is not None:
                tokens.extend(self._pack_match_rules(POST_MATCH_PREFIX, model, query.post))
            if query.sort is not None:
                tokens.extend(self._pack_sort(model, query.sort))
            if query.limit is not None:
                tokens.extend(self._pack_limit(query.limit))

        if not tokens:
            return ""
        return "/".join([QUERY_PREFIX, *tokens])

    def from_url(self, model: str | Entity, url: str) -> DecodedQuery:
        """Parse a query path produced by :meth:`to_url`.

        A path that does not start with ``query`` yields an empty result.

        Raises:
            QuerySerializationError: The path is malformed, truncated, or
                references paths or codes the model does not support.
        """
        reader = TokenReader(split_path(url))
        if reader.peek() != QUERY_PREFIX:
            return DecodedQuery()
        reader.pop("the query prefix")

        sections: dict[str, Any] = {}
        while reader:
            prefix = reader.peek()
            if prefix == PRE_MATCH_PREFIX:
                sections["pre"] = self._unpack_match_rules(PRE_MATCH_PREFIX, model, reader)
            elif prefix == POST_MATCH_PREFIX:
                sections["post"] = self._unpack_match_rules(POST_MATCH_PREFIX, model, reader)
            elif prefix == SORT_PREFIX:
                sections["sort"] = self._unpack_sort(model, reader)
            elif prefix == LIMIT_PREFIX:
                sections["limit"] = self._unpack_limit(reader)
            elif prefix == FIELDS_PREFIX:
                sections["fields"] = self._unpack_fields(reader)
            else:
                msg = "Unsupported data serialization type."
                raise UnsupportedSerializationError(msg)

        logger.debug("Decoded query path %r into sections %s", url, sorted(sections))
        return DecodedQuery(**sections)
