"""Root CLI group for restdriver with global flags and command registration."""

from __future__ import annotations

import click

from restdriver import __version__
from restdriver.commands import register_commands
from restdriver.commands._base import RdGroup
from restdriver.commands._context import AppContext
from restdriver.config.settings import RestDriverSettings


@click.group(
    cls=RdGroup,
    invoke_without_command=True,
    examples="""\
  restdriver query encode user --pre '{"age": {"gte": 18}}' --sort '{"age": "desc"}'
  restdriver query decode user query/sort/1/age/desc/limit/0/10
  restdriver api find user query/limit/0/10
  restdriver --json api get user 42""",
)
@click.version_option(version=__version__, prog_name="restdriver")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """restdriver — query path codec and REST data driver."""
    settings = RestDriverSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
