"""BaseService — shared foundation for restdriver services.

Every service receives a :class:`SchemaRegistry` at construction time and
owns a :class:`QueryCodec` bound to it. Services translate domain
exceptions into failed :class:`ServiceResult` values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from restdriver.codec.filters import QueryCodec

if TYPE_CHECKING:
    from restdriver.schema.registry import SchemaRegistry


class BaseService:
    """Base for service-layer classes.

    Usage::

        class QueryService(BaseService):
            def decode(self, model: str, url: str) -> ServiceResult:
                decoded = self._codec.from_url(model, url)
                ...
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry
        self._codec = QueryCodec(registry)
