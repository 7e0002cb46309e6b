"""ServiceResult and ServiceError — the service-layer return contract.

INVARIANT: Service methods return ServiceResult and never raise for
expected failures (bad paths, malformed query URLs, HTTP errors).
The CLI and any future interface consume this type.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"encode_query"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None

    @classmethod
    def failure(cls, op: str, exc: Exception, **detail: Any) -> ServiceResult:
        """Build a failed result from a domain exception.

        The error code comes from the exception's ``code`` attribute (see
        :mod:`restdriver.domain.errors`), falling back to ``"ERROR"``.
        """
        code = getattr(exc, "code", "ERROR")
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=str(exc), detail=detail),
        )
