"""Query value objects: operations, match rules, sort, limit.

All models are frozen. A query is built fresh for every encode call and
every decode produces a new :class:`DecodedQuery`; nothing here is shared
or mutated after construction.

``pre`` and ``post`` are a tagged variant: :class:`SingleRule` holds one
match, :class:`AnyRule` holds alternative matches. Callers may pass a bare
mapping (one rule) or a list of mappings (alternatives) and the validator
tags them.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# JavaScript-style regex flag letters understood by the REST backends.
_FLAG_BITS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


class RegExpLiteral(BaseModel):
    """A regular expression as a ``(pattern, flags)`` pair."""

    model_config = {"frozen": True}

    pattern: str
    flags: str = ""

    @classmethod
    def from_pattern(cls, compiled: re.Pattern[str]) -> RegExpLiteral:
        """Build a literal from a compiled pattern, keeping the i/m/s flags."""
        letters = "".join(letter for letter, bit in _FLAG_BITS.items() if compiled.flags & bit)
        return cls(pattern=compiled.pattern, flags=letters)

    def compile(self) -> re.Pattern[str]:
        """Compile to a Python pattern. Flag letters without an equivalent are ignored."""
        bits = 0
        for letter in self.flags:
            bits |= _FLAG_BITS.get(letter, 0)
        return re.compile(self.pattern, bits)


class Operation(BaseModel):
    """One filter operation applied to a property path.

    Accepts either ``{"operator": "eq", "value": 1}`` or the shorthand
    ``{"eq": 1}``. The operator code and the value shape are checked when
    the operation is packed, not here.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    operator: str
    value: Any = None

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "operator" not in data and len(data) == 1:
            ((operator, value),) = data.items()
            return {"operator": operator, "value": value}
        return data


Match = dict[str, Operation]


class SingleRule(BaseModel):
    """Exactly one match rule."""

    model_config = {"frozen": True}

    kind: Literal["single"] = "single"
    rule: Match

    @property
    def rules(self) -> list[Match]:
        return [self.rule]


class AnyRule(BaseModel):
    """Alternative match rules; an entity matches when any rule matches."""

    model_config = {"frozen": True}

    kind: Literal["any"] = "any"
    rules: list[Match]


MatchRules = Annotated[SingleRule | AnyRule, Field(discriminator="kind")]


def as_rules(value: Any) -> Any:
    """Tag a bare match or a list of matches as a :data:`MatchRules` payload."""
    if value is None or isinstance(value, (SingleRule, AnyRule)):
        return value
    if isinstance(value, (list, tuple)):
        return {"kind": "any", "rules": list(value)}
    if isinstance(value, Mapping):
        if value.get("kind") == "single" and "rule" in value:
            return value
        if value.get("kind") == "any" and "rules" in value:
            return value
        return {"kind": "single", "rule": value}
    return value


class Limit(BaseModel):
    """Pagination window."""

    model_config = {"frozen": True}

    start: int = Field(default=0, ge=0)
    count: int = Field(default=0, ge=0)


class Query(BaseModel):
    """Structured query: pre/post match rules, sort order, and limit.

    Attributes:
        pre: Rules applied before the backend groups or joins.
        post: Rules applied to the final result set.
        sort: Ordered mapping of property path to order code.
        limit: Pagination window.
    """

    model_config = {"frozen": True}

    pre: MatchRules | None = None
    post: MatchRules | None = None
    sort: dict[str, str] | None = None
    limit: Limit | None = None

    @field_validator("pre", "post", mode="before")
    @classmethod
    def _tag_rules(cls, value: Any) -> Any:
        return as_rules(value)


class DecodedQuery(Query):
    """A query parsed from a URL path, together with its viewed fields."""

    fields: list[str] = Field(default_factory=list)
