from .entity import (
    Column,
    EntityColumn,
    EntityDescriptor,
    Identity,
    Transient,
    describe_entity,
    materialize,
)
from .protocols import DataExtractor, RowMapper

__all__ = [
    "Column",
    "EntityColumn",
    "EntityDescriptor",
    "Identity",
    "Transient",
    "describe_entity",
    "materialize",
    "DataExtractor",
    "RowMapper",
]
