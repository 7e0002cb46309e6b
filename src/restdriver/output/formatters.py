"""Render ServiceResult for humans or machines.

Human output is ``OK: <op>`` (or ``ERROR: <op>: [CODE] message``) followed
by one indented line per data key; lists get one ``-`` line per item so
``api find`` output stays greppable. ``--json`` dumps the model unchanged.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from restdriver.services.result import ServiceResult


def _compact(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _render_fields(data: dict[str, Any]) -> list[str]:
    lines: list[str] = []
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, list) and value:
            lines.append(f"  {key}:")
            lines.extend(f"    - {_compact(item)}" for item in value)
        else:
            lines.append(f"  {key}: {_compact(value)}")
    return lines


def format_result(result: ServiceResult, *, json_output: bool = False) -> str:
    """Format *result* as pretty JSON or as human-readable lines."""
    if json_output:
        return result.model_dump_json(indent=2)
    if result.ok:
        return "\n".join([f"OK: {result.op}", *_render_fields(result.data)])
    if result.error is None:
        return f"ERROR: {result.op}: Unknown error"
    header = f"ERROR: {result.op}: [{result.error.code}] {result.error.message}"
    return "\n".join([header, *_render_fields(result.error.detail)])
