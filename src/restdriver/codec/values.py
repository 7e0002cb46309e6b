"""Type-directed scalar conversion for query path tokens.

Two layers, kept separate:
- pack/unpack: native value <-> text, driven by the column's format tags.
- encode/decode: text <-> percent-encoded URL token.

Packing is lossy on purpose: ``False`` and ``None`` both pack to ``"0"``.
The column's declared formats decide which one comes back on unpack.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from urllib.parse import quote, unquote

from restdriver.domain.errors import InvalidValueError
from restdriver.domain.types import Format
from restdriver.schema.registry import Column

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Same unreserved set as JavaScript's encodeURIComponent.
_SAFE_CHARS = "-_.!~*'()"

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

Scalar = datetime | float | int | bool | str | None


def encode_token(text: str) -> str:
    """Percent-encode *text* for use as one path segment."""
    return quote(text, safe=_SAFE_CHARS)


def decode_token(token: str) -> str:
    """Percent-decode one path segment."""
    try:
        return unquote(token, errors="strict")
    except UnicodeDecodeError as exc:
        msg = f"Malformed percent-encoding in token '{token}'."
        raise InvalidValueError(msg) from exc


def to_epoch_ms(value: datetime) -> int:
    """Milliseconds since the Unix epoch. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    try:
        return EPOCH + timedelta(milliseconds=ms)
    except OverflowError as exc:
        msg = f"Timestamp {ms} is out of range."
        raise InvalidValueError(msg) from exc


def parse_int(text: str) -> int:
    """Read the leading integer of *text* (``"12px"`` -> 12)."""
    found = _INT_PREFIX.match(text)
    if found is None:
        msg = f"Expected an integer, got '{text}'."
        raise InvalidValueError(msg)
    return int(found.group(1))


def parse_float(text: str) -> float:
    """Read the leading number of *text*, accepting ``Infinity`` and ``NaN``."""
    stripped = text.strip()
    if stripped in ("Infinity", "+Infinity", "-Infinity", "NaN"):
        return float(stripped.replace("Infinity", "inf"))
    found = _FLOAT_PREFIX.match(text)
    if found is None:
        msg = f"Expected a number, got '{text}'."
        raise InvalidValueError(msg)
    return float(found.group(1))


def format_number(value: float) -> str:
    """Spell *value* the way JavaScript's ``Number#toString`` does.

    ``1.0`` is ``"1"``, ``1e16`` is ``"10000000000000000"``, ``1e-7`` is
    ``"1e-7"`` and the non-finite values are ``Infinity``, ``-Infinity`` and
    ``NaN``. Every result reads back through :func:`parse_float`.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(repr(value)), "f")
    mantissa, exponent = repr(value).split("e")
    return f"{mantissa}e{int(exponent):+d}"


def pack_value(column: Column, value: Any) -> str:
    """Convert a native value to its textual form.

    *column* is part of the contract so packing can become format-aware;
    the current representation depends on the value alone.
    """
    if isinstance(value, datetime):
        return str(to_epoch_ms(value))
    if isinstance(value, date):
        return str(to_epoch_ms(datetime.combine(value, time(), tzinfo=UTC)))
    if value is True:
        return "1"
    if value is False or value is None:
        return "0"
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def unpack_value(column: Column, text: str) -> Scalar:
    """Convert packed text back to a native value using *column*'s formats.

    Precedence: date, decimal/number, integer/timestamp, boolean, null.
    Text that matches none of them is returned unchanged.
    """
    if column.has_format(Format.DATE):
        return from_epoch_ms(parse_int(text))
    if column.has_format(Format.DECIMAL) or column.has_format(Format.NUMBER):
        return parse_float(text)
    if column.has_format(Format.INTEGER) or column.has_format(Format.TIMESTAMP):
        return parse_int(text)
    if column.has_format(Format.BOOLEAN) and text in ("1", "0"):
        return text == "1"
    if column.has_format(Format.NULL) and text == "0":
        return None
    return text
