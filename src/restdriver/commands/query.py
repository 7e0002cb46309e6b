"""Command group: encode and decode serialized query paths offline."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import click

from restdriver.commands._base import RdGroup
from restdriver.services.query import QueryService

if TYPE_CHECKING:
    from restdriver.commands._context import AppContext

_QUERY_EXAMPLES = """\
  restdriver query encode user --pre '{"name": {"eq": "Ann"}}'
  restdriver query encode user --sort '{"age": "desc"}' --limit 0 10
  restdriver query decode user query/sort/1/age/desc/limit/0/10"""


def _parse_json(param: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"{param} is not valid JSON: {exc.msg}"
        raise click.BadParameter(msg) from exc


def _parse_rules(param: str, raw: tuple[str, ...]) -> Any:
    """One ``--pre`` is a single rule; repeating it gives alternatives."""
    if not raw:
        return None
    rules = [_parse_json(param, item) for item in raw]
    return rules[0] if len(rules) == 1 else rules


@click.group(cls=RdGroup, examples=_QUERY_EXAMPLES)
@click.pass_obj
def query(app: AppContext) -> None:
    """Build and inspect query paths for a configured entity."""


@query.command(
    examples="""\
  restdriver query encode user --field name --field age
  restdriver query encode user --pre '{"age": {"between": [18, 65]}}'
  restdriver query encode user --pre '{"name": {"eq": "Ann"}}' --pre '{"name": {"eq": "Bob"}}'
  restdriver query encode user --post '{"name": {"regexp": ["^a", "i"]}}'
  restdriver --json query encode user --sort '{"age": "desc"}' --limit 0 10"""
)
@click.argument("model")
@click.option("--pre", multiple=True, help="Pre-match rule as JSON; repeat for alternatives.")
@click.option("--post", multiple=True, help="Post-match rule as JSON (repeatable).")
@click.option("--sort", default=None, help='Sort order as JSON, e.g. {"age": "desc"}.')
@click.option("--limit", nargs=2, type=int, default=None, help="Pagination START COUNT.")
@click.option("--field", "fields", multiple=True, help="Viewed field path (repeatable).")
@click.pass_obj
def encode(
    app: AppContext,
    model: str,
    pre: tuple[str, ...],
    post: tuple[str, ...],
    sort: str | None,
    limit: tuple[int, int] | None,
    fields: tuple[str, ...],
) -> None:
    """Serialize query sections into a URL path."""
    svc = QueryService(app.registry)
    result = svc.encode(
        model,
        pre=_parse_rules("--pre", pre),
        post=_parse_rules("--post", post),
        sort=_parse_json("--sort", sort) if sort else None,
        limit=tuple(limit) if limit else None,
        fields=list(fields) or None,
    )
    app.emit(result)


@query.command(
    examples="""\
  restdriver query decode user query/fields/2/name/age
  restdriver --json query decode user query/pre/1/1/age/gte/18"""
)
@click.argument("model")
@click.argument("url")
@click.pass_obj
def decode(app: AppContext, model: str, url: str) -> None:
    """Parse a URL path back into its query sections."""
    app.emit(QueryService(app.registry).decode(model, url))
