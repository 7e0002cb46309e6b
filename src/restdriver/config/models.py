"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, restdriver.toml only contains
overrides. A working setup needs only [api] url and its [entities.*].
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from restdriver.domain.types import Format

# --- restdriver.toml sections ---


class ApiConfig(BaseModel):
    """[api] section."""

    model_config = {"frozen": True}

    url: str = "http://localhost:8080"
    timeout: float = 10.0
    accepted_content_types: list[str] = Field(default_factory=lambda: ["application/json"])


class ColumnConfig(BaseModel):
    """[entities.<name>.columns.<property>] section."""

    model_config = {"frozen": True}

    storage_name: str = ""
    formats: list[Format] = Field(default_factory=lambda: [Format.STRING])
    entity: str | None = None


class EntityConfig(BaseModel):
    """[entities.<name>] section."""

    model_config = {"frozen": True}

    storage: str = ""
    columns: dict[str, ColumnConfig] = Field(default_factory=dict)

