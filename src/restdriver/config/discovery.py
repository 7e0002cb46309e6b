"""Locate and read ``restdriver.toml``.

Lookup order: the ``RESTDRIVER_CONFIG`` variable, then ``restdriver.toml``
in the start directory and each of its parents (the way git finds
``.git/``). The ``--config`` flag bypasses discovery entirely.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import click

CONFIG_FILENAME = "restdriver.toml"
CONFIG_ENV_VAR = "RESTDRIVER_CONFIG"


def _search_dirs(start: Path | None) -> Iterator[Path]:
    here = (start or Path.cwd()).resolve()
    yield here
    yield from here.parents


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd).

    A set ``RESTDRIVER_CONFIG`` wins even when it names a missing file; the
    walk-up is skipped and None is returned.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    for directory in _search_dirs(start):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path*. Syntax errors surface as a ClickException naming the file."""
    with path.open("rb") as fh:
        try:
            return tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {path}: {exc}"
            raise click.ClickException(msg) from exc

