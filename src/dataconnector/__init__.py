"""
dataconnector: a thin data-access layer over SQLAlchemy Core.

    from dataconnector import Connector, EntityRepository, Identity

    connector = Connector.from_settings()
    connector.select_value("SELECT COUNT(*) FROM customers")
"""

from dataconnector.exceptions import (
    ConstraintKind,
    ConstraintViolationError,
    DuplicateKeyError,
    ForeignKeyConstraintError,
    RepositoryError,
)
from dataconnector.mapping import Column, DataExtractor, Identity, RowMapper, Transient
from dataconnector.query import (
    BindingKind,
    Connector,
    ExecutionResult,
    QueryParameter,
    binary_parameter,
    image_parameter,
    output_parameter,
    xml_parameter,
)
from dataconnector.repositories import EntityRepository, Repository

__all__ = [
    "BindingKind",
    "Column",
    "Connector",
    "ConstraintKind",
    "ConstraintViolationError",
    "DataExtractor",
    "DuplicateKeyError",
    "EntityRepository",
    "ExecutionResult",
    "ForeignKeyConstraintError",
    "Identity",
    "QueryParameter",
    "Repository",
    "RepositoryError",
    "RowMapper",
    "Transient",
    "binary_parameter",
    "image_parameter",
    "output_parameter",
    "xml_parameter",
]
