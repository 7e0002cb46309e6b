"""Entity models and the path-resolving schema registry.

The codec never introspects entity classes. It asks a
:class:`PathResolver` to turn ``(model, "dotted.path")`` into the list of
columns walked along the way, ending with the leaf column whose formats
drive value conversion.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel, Field, model_validator

from restdriver.domain.errors import UnknownEntityError
from restdriver.domain.types import Format


class Column(BaseModel):
    """Schema metadata for one entity property.

    Attributes:
        name: Property name used in query paths.
        storage_name: Real (storage) name; defaults to *name*.
        formats: Format tags driving value (de)serialization.
        entity: Name of the nested entity for object columns.
    """

    model_config = {"frozen": True}

    name: str
    storage_name: str = ""
    formats: tuple[Format, ...] = (Format.STRING,)
    entity: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_storage_name(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not data.get("storage_name"):
            return {**data, "storage_name": data.get("name", "")}
        return data

    def has_format(self, fmt: Format) -> bool:
        return fmt in self.formats


class Entity(BaseModel):
    """An entity model: its REST collection path and its columns."""

    model_config = {"frozen": True}

    name: str
    storage: str = ""
    columns: dict[str, Column] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _default_storage(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not data.get("storage"):
            return {**data, "storage": data.get("name", "")}
        return data


class PathResolver(Protocol):
    """What the codec needs from a schema registry."""

    def resolve_path_columns(self, model: str | Entity, path: str) -> list[Column] | None: ...


class SchemaRegistry:
    """In-memory registry of entity models.

    Usage::

        registry = SchemaRegistry()
        registry.register(Entity(name="user", columns={...}))
        registry.resolve_path_columns("user", "address.city")
    """

    def __init__(self, entities: Iterable[Entity] = ()) -> None:
        self._entities: dict[str, Entity] = {}
        for entity in entities:
            self.register(entity)

    @classmethod
    def from_config(cls, entities: Mapping[str, Mapping[str, Any]]) -> SchemaRegistry:
        """Build a registry from ``[entities.<name>]`` configuration sections.

        Column tables are keyed by property name, so ``name`` may be omitted
        inside them.
        """
        registry = cls()
        for entity_name, section in entities.items():
            columns = {
                prop: Column.model_validate({"name": prop, **dict(column)})
                for prop, column in (section.get("columns") or {}).items()
            }
            registry.register(
                Entity(
                    name=entity_name,
                    storage=section.get("storage") or entity_name,
                    columns=columns,
                )
            )
        return registry

    def register(self, entity: Entity) -> Entity:
        self._entities[entity.name] = entity
        return entity

    def names(self) -> list[str]:
        return sorted(self._entities)

    def get(self, model: str | Entity) -> Entity:
        """Return the registered entity for *model* (a name or an Entity)."""
        if isinstance(model, Entity):
            return model
        entity = self._entities.get(model)
        if entity is None:
            msg = f"Entity model '{model}' is not registered."
            raise UnknownEntityError(msg)
        return entity

    def storage_path(self, model: str | Entity) -> str:
        """REST collection path of *model*."""
        return self.get(model).storage

    def resolve_path_columns(self, model: str | Entity, path: str) -> list[Column] | None:
        """Resolve a dotted property path to the columns it walks through.

        Returns None when the model is unknown, any step is missing, or a
        non-leaf step is not an object column with a registered entity.
        """
        try:
            entity = self.get(model)
        except UnknownEntityError:
            return None

        columns: list[Column] = []
        steps = path.split(".")
        for index, step in enumerate(steps):
            column = entity.columns.get(step)
            if column is None:
                return None
            columns.append(column)
            if index == len(steps) - 1:
                break
            if column.entity is None or column.entity not in self._entities:
                return None
            entity = self._entities[column.entity]
        return columns
