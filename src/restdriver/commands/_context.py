"""AppContext: the object Click hands to every subcommand via ``@click.pass_obj``."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from restdriver.config.logging import configure_logging
from restdriver.output.formatters import format_result

if TYPE_CHECKING:
    from restdriver.config.settings import RestDriverSettings
    from restdriver.driver.driver import Driver
    from restdriver.schema.registry import SchemaRegistry
    from restdriver.services.result import ServiceResult


class AppContext:
    """Settings plus a lazily built driver, and the single exit point for results.

    Offline commands (``query encode``/``decode``) only touch
    :attr:`registry`; nothing is sent until a service calls the driver.
    """

    def __init__(self, settings: RestDriverSettings) -> None:
        self.settings = settings
        self._driver: Driver | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def driver(self) -> Driver:
        if self._driver is None:
            from restdriver.driver.driver import Driver

            self._driver = Driver.from_settings(self.settings)
        return self._driver

    @property
    def registry(self) -> SchemaRegistry:
        return self.driver.registry

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and set the exit status.

        Success goes to stdout; in human mode its warnings follow on stderr.
        Failure goes to stderr and exits with status 1.
        """
        rendered = format_result(result, json_output=self.settings.json_output)
        if not result.ok:
            click.echo(rendered, err=True)
            raise SystemExit(1)
        click.echo(rendered)
        if self.settings.json_output:
            return
        for warning in result.warnings:
            click.echo(f"WARNING: {warning}", err=True)
