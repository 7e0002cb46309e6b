"""QueryService — encode and decode query paths for an entity model."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from restdriver.domain.errors import QuerySerializationError, UnknownEntityError
from restdriver.domain.query import Limit, Query
from restdriver.services.base import BaseService
from restdriver.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)


class QueryService(BaseService):
    """Builds and parses serialized query paths."""

    def encode(
        self,
        model: str,
        *,
        pre: Any = None,
        post: Any = None,
        sort: Mapping[str, str] | None = None,
        limit: tuple[int, int] | Limit | None = None,
        fields: Sequence[str] | None = None,
    ) -> ServiceResult:
        """Serialize query sections into a URL path.

        Args:
            model: Registered entity name.
            pre: A match mapping or a list of alternative match mappings.
            post: Same shape as *pre*, applied after *pre*.
            sort: Property path to ``"asc"``/``"desc"``.
            limit: ``(start, count)`` or a :class:`Limit`.
            fields: Viewed fields projection.
        """
        op = "encode_query"
        warnings: list[str] = []
        try:
            if isinstance(limit, tuple):
                limit = Limit(start=limit[0], count=limit[1])
            self._registry.get(model)
            query = Query(pre=pre, post=post, sort=sort, limit=limit)
            path = self._codec.to_url(model, query, fields)
        except (QuerySerializationError, UnknownEntityError) as exc:
            return ServiceResult.failure(op, exc, model=model)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="INVALID_QUERY",
                    message=f"Invalid query structure: {exc.error_count()} error(s)",
                    detail={"errors": errors},
                ),
            )

        if fields and len(set(fields)) != len(fields):
            warnings.append(
                f"Duplicate viewed fields: declared count {len(fields)} "
                f"exceeds {len(set(fields))} distinct paths"
            )
        logger.debug("Encoded %s query: %s", model, path)
        return ServiceResult(ok=True, op=op, data={"model": model, "path": path}, warnings=warnings)

    def decode(self, model: str, url: str) -> ServiceResult:
        """Parse a URL path back into its query sections."""
        op = "decode_query"
        try:
            self._registry.get(model)
            decoded = self._codec.from_url(model, url)
        except (QuerySerializationError, UnknownEntityError) as exc:
            return ServiceResult.failure(op, exc, model=model, url=url)

        return ServiceResult(
            ok=True,
            op=op,
            data={"model": model, **decoded.model_dump(mode="json")},
        )
