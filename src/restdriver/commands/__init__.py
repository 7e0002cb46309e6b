"""Subcommand modules for restdriver.

Provides register_commands() which uses deferred imports so the HTTP
stack is only loaded when a command actually runs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``query`` and ``api`` command groups on the root CLI group."""
    from restdriver.commands.api import api
    from restdriver.commands.query import query

    cli.add_command(query)
    cli.add_command(api)
