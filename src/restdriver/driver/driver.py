"""Driver — CRUD operations on entity models over a REST API.

Every operation builds a request path from the entity's storage path plus
either an entity id or a serialized query (see
:class:`~restdriver.codec.filters.QueryCodec`), then issues one HTTP verb
per request. Responses are returned as decoded JSON; entities are never
hydrated into typed objects.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel

from restdriver.codec.filters import QueryCodec
from restdriver.domain.query import Match, Query
from restdriver.driver.transport import JSON_CONTENT_TYPE, Method, RequestsTransport, Transport
from restdriver.schema.registry import Entity, SchemaRegistry

if TYPE_CHECKING:
    from restdriver.config.settings import RestDriverSettings

logger = structlog.get_logger(__name__)

PATH_COMPLEMENT = "%0"


def extract_value(value: Any) -> Any:
    """Flatten an entity (or any nested value) into JSON-compatible data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return extract_value(dataclasses.asdict(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): extract_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [extract_value(item) for item in value]
    return value


class Driver:
    """REST data driver.

    Usage::

        driver = Driver(registry).connect("https://api.example.com")
        users = driver.find("user", Query(sort={"age": "desc"}), ["name"])

    Args:
        registry: Entity models and path resolution.
        transport: Preconfigured transport; use :meth:`connect` otherwise.
    """

    def __init__(self, registry: SchemaRegistry, transport: Transport | None = None) -> None:
        self._registry = registry
        self._codec = QueryCodec(registry)
        self._transport = transport
        self._api_path: str | None = None

    @classmethod
    def from_settings(cls, settings: RestDriverSettings) -> Driver:
        """Build a connected driver from configuration."""
        registry = SchemaRegistry.from_config(
            {name: entity.model_dump() for name, entity in settings.entities.items()}
        )
        return cls(registry).connect(
            settings.api.url,
            timeout=settings.api.timeout,
            accepted_content_types=settings.api.accepted_content_types,
        )

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def codec(self) -> QueryCodec:
        return self._codec

    def connect(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        accepted_content_types: Sequence[str] = (JSON_CONTENT_TYPE,),
    ) -> Driver:
        """Point the driver at an API root URL."""
        self._transport = RequestsTransport(
            url,
            timeout=timeout,
            accepted_content_types=accepted_content_types,
        )
        logger.debug("driver.connect", url=url)
        return self

    def use_path(self, path: str) -> Driver:
        """Override the path of the next request only.

        ``%0`` in *path* is replaced with the request's complement (the id
        or the serialized query).
        """
        self._api_path = path
        return self

    def get_path(self, model: str | Entity, complement: str | None = None) -> str:
        """Build the request path for *model* and consume any path override."""
        path = self._registry.storage_path(model).rstrip("/")
        if not path:
            msg = "There is no path for the specified model entity."
            raise ValueError(msg)
        if self._api_path is not None:
            override = self._api_path.replace(PATH_COMPLEMENT, complement or "")
            self._api_path = None
            if override.strip("/"):
                path = f"{path}/{override.lstrip('/')}"
        elif complement:
            path = f"{path}/{complement.lstrip('/')}"
        return path

    def _send(self, method: Method, path: str, body: Any | None = None) -> Any:
        if self._transport is None:
            msg = "Driver is not connected; call connect() first."
            raise RuntimeError(msg)
        payload = extract_value(body) if body is not None else None
        response = self._transport.send(method.value, path, payload)
        logger.debug("driver.response", method=method.value, path=path, status=response.status)
        return response

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def insert(self, model: str | Entity, entities: Iterable[Any]) -> list[Any]:
        """POST each entity; return the ids of those the API created."""
        ids: list[Any] = []
        for entity in entities:
            response = self._send(Method.POST, self.get_path(model), entity)
            if response.status == 201:
                ids.append(response.json()["id"])
            else:
                logger.warning("driver.insert_rejected", status=response.status)
        return ids

    # ------------------------------------------------------------------
    # read
    # ------------------------------------------------------------------

    def find(
        self,
        model: str | Entity,
        query: Query | Mapping[str, Any] | None = None,
        fields: Sequence[str] | None = None,
    ) -> list[Any]:
        """GET the entities matching *query*; empty list unless the API answers 200."""
        return self.find_path(model, self._codec.to_url(model, query, fields))

    def find_path(self, model: str | Entity, path: str) -> list[Any]:
        """GET the entities for an already serialized query *path*, sent as given."""
        response = self._send(Method.GET, self.get_path(model, path))
        if response.status != 200:
            return []
        return list(response.json())

    def find_by_id(
        self,
        model: str | Entity,
        entity_id: str,
        fields: Sequence[str] | None = None,
    ) -> Any | None:
        """GET one entity by id; None unless the API answers 200."""
        complement = str(entity_id)
        projection = self._codec.to_url(model, None, fields)
        if projection:
            complement = f"{complement}/{projection}"
        response = self._send(Method.GET, self.get_path(model, complement))
        return response.json() if response.status == 200 else None

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    def update(self, model: str | Entity, entity: Any, match: Match | Mapping[str, Any]) -> int:
        """PATCH every entity matching *match*; return the updated count."""
        path = self.get_path(model, self._codec.to_url(model, Query(pre=match)))
        response = self._send(Method.PATCH, path, entity)
        return self._total(response)

    def update_by_id(self, model: str | Entity, entity: Any, entity_id: str) -> bool:
        """PATCH one entity by id."""
        response = self._send(Method.PATCH, self.get_path(model, str(entity_id)), entity)
        return response.status in (200, 204)

    # ------------------------------------------------------------------
    # delete
    # ------------------------------------------------------------------

    def delete(self, model: str | Entity, match: Match | Mapping[str, Any]) -> int:
        """DELETE every entity matching *match*; return the deleted count."""
        path = self.get_path(model, self._codec.to_url(model, Query(pre=match)))
        response = self._send(Method.DELETE, path)
        return self._total(response)

    def delete_by_id(self, model: str | Entity, entity_id: str) -> bool:
        """DELETE one entity by id."""
        response = self._send(Method.DELETE, self.get_path(model, str(entity_id)))
        return response.status in (200, 204)

    @staticmethod
    def _total(response: Any) -> int:
        if response.status == 200:
            return int(response.json().get("total", 0))
        return 0
