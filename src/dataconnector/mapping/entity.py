"""
Entity descriptors.

An entity is a pydantic model whose declared fields correspond to table columns.
Persistence is declared per field with `typing.Annotated` markers instead of being
inferred from the class:

    class Customer(BaseModel):
        __tablename__ = "customers"

        id: Annotated[int | None, Identity()] = None
        name: str = ""
        email: Annotated[str | None, Column("email_address")] = None
        display_name: Annotated[str | None, Transient()] = None

        @property
        def label(self) -> str:          # computed, never persisted
            return f"{self.name} <{self.email}>"

- Identity(): generated by the database on insert, left out of INSERT statements.
- Column(name): the field maps to a differently named column.
- Transient(): a model field that is not stored in the table.

describe_entity() derives the EntityDescriptor once per type and memoizes it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Iterable, Mapping, Type, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

EntityType = TypeVar("EntityType", bound=BaseModel)


# =================================================================================================================
# Field annotations
# =================================================================================================================

class Identity:
    """Marks a field as an auto-generated identity column."""

    def __repr__(self) -> str:
        return "Identity()"


class Transient:
    """Marks a model field that has no table column."""

    def __repr__(self) -> str:
        return "Transient()"


@dataclass(frozen=True)
class Column:
    """Maps a field to the column `name`."""

    name: str


# =================================================================================================================
# Descriptor
# =================================================================================================================

@dataclass(frozen=True)
class EntityColumn:
    attribute: str
    column: str
    identity: bool = False


@dataclass(frozen=True)
class EntityDescriptor:
    entity_type: type
    table_name: str
    columns: tuple[EntityColumn, ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.column for c in self.columns)

    @property
    def identity_columns(self) -> frozenset[str]:
        return frozenset(c.column for c in self.columns if c.identity)

    @property
    def insert_columns(self) -> tuple[EntityColumn, ...]:
        return tuple(c for c in self.columns if not c.identity)

    def find(self, name: str) -> EntityColumn | None:
        """Look a result column up by column name, then by attribute name."""
        for candidate in self.columns:
            if candidate.column == name:
                return candidate
        for candidate in self.columns:
            if candidate.attribute == name:
                return candidate
        return None


def _has_marker(metadata: Iterable[Any], marker: type) -> bool:
    return any(isinstance(item, marker) or item is marker for item in metadata)


def _column_name(attribute: str, metadata: Iterable[Any]) -> str:
    for item in metadata:
        if isinstance(item, Column):
            return item.name
    return attribute


def table_name_for(entity_type: type) -> str:
    """The entity's `__tablename__`, or its class name when none is declared."""
    return getattr(entity_type, "__tablename__", None) or entity_type.__name__


@lru_cache(maxsize=None)
def describe_entity(entity_type: Type[BaseModel]) -> EntityDescriptor:
    """
    Build the descriptor for `entity_type`.

    Columns follow field declaration order. Cached per type: model fields are fixed once
    the class is created, so the result never goes stale.

    Raises:
        TypeError: if `entity_type` is not a pydantic model class.
    """
    if not (isinstance(entity_type, type) and issubclass(entity_type, BaseModel)):
        raise TypeError(f"{entity_type!r} is not a pydantic model class")

    columns = []
    for attribute, info in entity_type.model_fields.items():
        metadata = info.metadata
        if _has_marker(metadata, Transient):
            continue
        columns.append(
            EntityColumn(
                attribute=attribute,
                column=_column_name(attribute, metadata),
                identity=_has_marker(metadata, Identity),
            )
        )

    descriptor = EntityDescriptor(
        entity_type=entity_type,
        table_name=table_name_for(entity_type),
        columns=tuple(columns),
    )

    logger.debug(
        "entity.described",
        extra={
            "entity": entity_type.__name__,
            "table": descriptor.table_name,
            "columns": list(descriptor.column_names),
            "identity_columns": sorted(descriptor.identity_columns),
        },
    )
    return descriptor


# =================================================================================================================
# Row <-> entity conversion
# =================================================================================================================

def to_db_value(value: Any) -> Any:
    """Enum members bind as their underlying value."""
    if isinstance(value, Enum):
        return value.value
    return value


def insert_values(entity: BaseModel) -> dict[str, Any]:
    """{attribute: value} for every non-identity column of `entity`."""
    descriptor = describe_entity(type(entity))
    return {c.attribute: to_db_value(getattr(entity, c.attribute)) for c in descriptor.insert_columns}


def materialize(entity_type: Type[EntityType], record: Mapping[str, Any]) -> EntityType:
    """
    Create an `entity_type` instance from a result record ({column name: value}).

    Columns are matched to persisted fields by column name, then attribute name; a
    column named after any other model field (a Transient() one) fills that field.
    Columns with no matching field are ignored. NULL arrives as None. Fields the record
    does not cover keep their model defaults.

    Raises:
        pydantic.ValidationError: if a value cannot be converted to its field type,
            or a required field without a default is not covered by the record.
    """
    descriptor = describe_entity(entity_type)

    values = {}
    for name, value in record.items():
        column = descriptor.find(name)
        if column is not None:
            values[column.attribute] = value
        elif name in entity_type.model_fields:
            values[name] = value

    return entity_type.model_validate(values)


__all__ = [
    "Identity",
    "Transient",
    "Column",
    "EntityColumn",
    "EntityDescriptor",
    "describe_entity",
    "table_name_for",
    "to_db_value",
    "insert_values",
    "materialize",
]
