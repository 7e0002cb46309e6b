"""HTTP transport for the driver.

The driver only needs ``send(method, path, body) -> Response``; the
:class:`Transport` protocol keeps it independent of the HTTP library so
tests can substitute an in-memory transport.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Any, Protocol

import requests
import structlog

from restdriver.domain.errors import TransportError

logger = structlog.get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"


class Method(StrEnum):
    """HTTP request methods."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Response(Protocol):
    """What the driver reads from an HTTP response."""

    @property
    def status(self) -> int: ...

    def json(self) -> Any: ...


class Transport(Protocol):
    """Sends one request relative to the API base URL."""

    def send(self, method: str, path: str, body: Any | None = None) -> Response: ...


def is_accepted_status_code(status: int) -> bool:
    """Success and client-error statuses are answers; anything else is a failure."""
    return 200 <= status <= 299 or 400 <= status <= 499


def is_accepted_content_type(content: str, *expected: str) -> bool:
    """Check the MIME type of *content*, ignoring parameters such as ``charset``."""
    mime = content.split(";", 1)[0]
    return mime.strip() in expected


class RequestsResponse:
    """Adapts :class:`requests.Response` to the :class:`Response` protocol."""

    def __init__(self, raw: requests.Response, accepted_content_types: Sequence[str]) -> None:
        self._raw = raw
        self._accepted = tuple(accepted_content_types)

    @property
    def status(self) -> int:
        return self._raw.status_code

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._raw.headers)

    def json(self) -> Any:
        """Decode the JSON body. An empty body decodes to ``{}``."""
        if not self._raw.content:
            return {}
        content_type = self._raw.headers.get("Content-Type", "")
        if not is_accepted_content_type(content_type, *self._accepted):
            msg = f"Unexpected response content type '{content_type}'."
            raise TransportError(msg, status=self.status)
        try:
            return self._raw.json()
        except ValueError as exc:
            msg = "Response body is not valid JSON."
            raise TransportError(msg, status=self.status) from exc


class RequestsTransport:
    """Transport backed by a :class:`requests.Session`.

    Args:
        base_url: API root; request paths are appended after a ``/``.
        timeout: Per-request timeout in seconds.
        accepted_content_types: MIME types a response body may declare.
        session: Optional preconfigured session.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        accepted_content_types: Sequence[str] = (JSON_CONTENT_TYPE,),
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.accepted_content_types = tuple(accepted_content_types)
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": ", ".join(self.accepted_content_types)})

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def send(self, method: str, path: str, body: Any | None = None) -> RequestsResponse:
        """Send one request and return the accepted response.

        Raises:
            TransportError: The request failed or the status code is outside
                the 2xx and 4xx ranges.
        """
        url = self.url_for(path)
        log = logger.bind(method=method, url=url)
        log.debug("http.request", has_body=body is not None)
        try:
            raw = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("http.failed", error=str(exc))
            msg = f"{method} {url} failed: {exc}"
            raise TransportError(msg) from exc

        log.debug("http.response", status=raw.status_code)
        if not is_accepted_status_code(raw.status_code):
            msg = f"{method} {url} returned unexpected status {raw.status_code}."
            raise TransportError(msg, status=raw.status_code)
        return RequestsResponse(raw, self.accepted_content_types)
