"""RestDriverSettings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs   (CLI flags passed by Click)
  2. Env vars      (``RESTDRIVER_*``, nested with ``__``: ``RESTDRIVER_API__URL``)
  3. TOML file     (``restdriver.toml``, see :mod:`restdriver.config.discovery`)
  4. Code defaults (the section models)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from restdriver.config.discovery import find_config, read_toml
from restdriver.config.models import ApiConfig, EntityConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by a single ``restdriver.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = read_toml(toml_path) if toml_path else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# pydantic-settings builds sources inside __init__; the path travels here.
_tls = threading.local()


def _toml_path(config_path: str | None, start: Path | None) -> Path | None:
    if not config_path:
        return find_config(start)
    path = Path(config_path)
    if not path.is_file():
        msg = f"Config file not found: {path}"
        raise click.ClickException(msg)
    return path


class RestDriverSettings(BaseSettings):
    """Settings for the CLI and :meth:`~restdriver.driver.driver.Driver.from_settings`.

    Attributes:
        config_path: The TOML file that was loaded, or None.
        api: Endpoint of the REST API.
        entities: Entity models keyed by name.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "RESTDRIVER_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    api: ApiConfig = Field(default_factory=ApiConfig)
    entities: dict[str, EntityConfig] = Field(default_factory=dict)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        start: Path | None = None,
        **cli_flags: Any,
    ) -> RestDriverSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* must exist; otherwise ``restdriver.toml``
        is discovered from *start*. *cli_flags* override everything else.

        Raises:
            click.ClickException: The explicit file is missing or any TOML
                file is malformed.
        """
        toml_path = _toml_path(config_path, start)
        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None
