"""Command group: read entities from the configured REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from restdriver.commands._base import RdGroup

if TYPE_CHECKING:
    from restdriver.commands._context import AppContext


@click.group(
    cls=RdGroup,
    examples="""\
  restdriver api find user
  restdriver api find user query/sort/1/age/desc/limit/0/10
  restdriver --json api get user 42""",
)
@click.pass_obj
def api(app: AppContext) -> None:
    """Query the REST API configured under [api]."""


@api.command(
    examples="""\
  restdriver api find user
  restdriver api find user query/fields/1/name
  restdriver api find user query/pre/1/1/active/eq/1/limit/0/20"""
)
@click.argument("model")
@click.argument("url", default="")
@click.pass_obj
def find(app: AppContext, model: str, url: str) -> None:
    """List entities matching a serialized query path."""
    from restdriver.services.api import ApiService

    app.emit(ApiService(app.driver).find(model, url))


@api.command(
    examples="""\
  restdriver api get user 42
  restdriver --json api get user 42"""
)
@click.argument("model")
@click.argument("entity_id")
@click.pass_obj
def get(app: AppContext, model: str, entity_id: str) -> None:
    """Fetch one entity by id."""
    from restdriver.services.api import ApiService

    app.emit(ApiService(app.driver).get(model, entity_id))
