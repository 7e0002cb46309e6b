"""ApiService — read entities from the REST API through the driver."""

from __future__ import annotations

import logging

from restdriver.codec.filters import QUERY_PREFIX, split_path
from restdriver.domain.errors import QuerySerializationError, TransportError, UnknownEntityError
from restdriver.driver.driver import Driver
from restdriver.services.base import BaseService
from restdriver.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)

_EXPECTED_ERRORS = (QuerySerializationError, UnknownEntityError, TransportError)


class ApiService(BaseService):
    """Read-only API surfaces used by the CLI."""

    def __init__(self, driver: Driver) -> None:
        super().__init__(driver.registry)
        self._driver = driver

    def find(self, model: str, url: str = "") -> ServiceResult:
        """List entities matching a serialized query path.

        The path is decoded first so malformed input fails before any
        request is sent. A valid path goes out with its tokens unchanged;
        a path without the query prefix selects the whole collection.
        """
        op = "find"
        try:
            self._codec.from_url(model, url)
            tokens = split_path(url)
            path = "/".join(tokens) if tokens[:1] == [QUERY_PREFIX] else ""
            items = self._driver.find_path(model, path)
        except _EXPECTED_ERRORS as exc:
            return ServiceResult.failure(op, exc, model=model)
        logger.debug("Fetched %d %s entities for %r", len(items), model, url)
        return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})

    def get(self, model: str, entity_id: str) -> ServiceResult:
        """Fetch one entity by id."""
        op = "get"
        try:
            item = self._driver.find_by_id(model, entity_id)
        except _EXPECTED_ERRORS as exc:
            return ServiceResult.failure(op, exc, model=model, id=entity_id)
        if item is None:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="NOT_FOUND",
                    message=f"No {model} with id '{entity_id}'",
                ),
            )
        return ServiceResult(ok=True, op=op, data={"item": item})
