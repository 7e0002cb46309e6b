"""Click base classes with an ``--examples`` flag.

``--help`` stays short; ``--examples`` prints copy-pasteable invocations
(query paths are hard to type from memory) and exits.
"""

from __future__ import annotations

import textwrap
from typing import Any

import click


class _ExamplesMixin:
    """Adds an eager ``--examples`` option when ``examples=`` is given."""

    params: list[click.Parameter]

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = textwrap.dedent(examples).strip("\n") if examples else None
        if self.examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or not self.examples:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(textwrap.indent(self.examples, "  "))
        ctx.exit(0)


class RdCommand(_ExamplesMixin, click.Command):
    """Click Command that supports ``--examples``."""


class RdGroup(_ExamplesMixin, click.Group):
    """Click Group that supports ``--examples``.

    Subcommands created with ``@group.command`` use :class:`RdCommand`.
    """

    command_class = RdCommand
