"""Shared pytest fixtures and test helpers for restdriver tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import requests
from click.testing import CliRunner

from restdriver.codec.filters import QueryCodec
from restdriver.domain.types import Format
from restdriver.schema.registry import Column, Entity, SchemaRegistry

CONFIG_TOML = """\
[api]
url = "http://api.test/v1"
timeout = 5

[entities.user]
storage = "users"

[entities.user.columns.name]

[entities.user.columns.age]
formats = ["integer"]

[entities.user.columns.active]
formats = ["boolean"]

[entities.user.columns.address]
formats = ["object"]
entity = "address"

[entities.address]
storage = "addresses"

[entities.address.columns.city]
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's RESTDRIVER_* environment out of every test."""
    for name in ("RESTDRIVER_CONFIG", "RESTDRIVER_API__URL", "RESTDRIVER_VERBOSE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo configure_logging() calls made by the CLI or logging tests."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    ours = logging.getLogger("restdriver")
    our_level = ours.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    ours.setLevel(our_level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def registry() -> SchemaRegistry:
    """User and address entities covering every value conversion."""
    address = Entity(
        name="address",
        storage="addresses",
        columns={
            "city": Column(name="city"),
            "zip": Column(name="zip", formats=(Format.INTEGER,)),
        },
    )
    user = Entity(
        name="user",
        storage="users",
        columns={
            "name": Column(name="name"),
            "age": Column(name="age", formats=(Format.INTEGER,)),
            "score": Column(name="score", formats=(Format.NUMBER,)),
            "active": Column(name="active", formats=(Format.BOOLEAN,)),
            "nickname": Column(name="nickname", formats=(Format.STRING, Format.NULL)),
            "created": Column(name="created", formats=(Format.DATE,)),
            "address": Column(name="address", formats=(Format.OBJECT,), entity="address"),
        },
    )
    return SchemaRegistry([user, address])


@pytest.fixture
def codec(registry: SchemaRegistry) -> QueryCodec:
    return QueryCodec(registry)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """restdriver.toml describing the user/address API."""
    path = tmp_path / "restdriver.toml"
    path.write_text(CONFIG_TOML, encoding="utf-8")
    return path


@pytest.fixture
def _isolated_config(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a directory holding restdriver.toml so the CLI finds it."""
    monkeypatch.chdir(config_file.parent)


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


class FakeResponse:
    """In-memory response satisfying the transport Response protocol."""

    def __init__(self, status: int, body: Any = None) -> None:
        self.status = status
        self._body = body

    def json(self) -> Any:
        return {} if self._body is None else self._body


class FakeTransport:
    """Records every request and replays queued responses in order."""

    def __init__(self, *responses: FakeResponse) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, str, Any]] = []

    def send(self, method: str, path: str, body: Any | None = None) -> FakeResponse:
        self.calls.append((method, path, body))
        if not self.responses:
            return FakeResponse(404)
        return self.responses.pop(0)


def make_http_response(
    status: int,
    body: Any = None,
    content_type: str = "application/json",
) -> requests.Response:
    """Build a real :class:`requests.Response` without touching the network."""
    raw = requests.Response()
    raw.status_code = status
    if body is None:
        raw._content = b""
    else:
        raw._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        raw.headers["Content-Type"] = content_type
    raw.encoding = "utf-8"
    return raw


class HttpCallLog(list[dict[str, Any]]):
    """Requests seen by the patched session, plus responses to replay."""

    def __init__(self) -> None:
        super().__init__()
        self.responses: list[requests.Response] = []


@pytest.fixture
def http_calls(monkeypatch: pytest.MonkeyPatch) -> Iterator[HttpCallLog]:
    """Intercept ``requests.Session.request``.

    Queue responses on ``http_calls.responses`` before invoking the code
    under test; unanswered requests get a JSON 404.
    """
    calls = HttpCallLog()

    def fake_request(
        self: requests.Session, method: str, url: str, **kwargs: Any
    ) -> requests.Response:
        calls.append({"method": method, "url": url, **kwargs})
        if not calls.responses:
            return make_http_response(404, {"error": "not found"})
        return calls.responses.pop(0)

    monkeypatch.setattr(requests.Session, "request", fake_request)
    yield calls
