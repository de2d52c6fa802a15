"""
Repository layer.

    from dataconnector.repositories import EntityRepository, Repository

`Repository` forwards hand-written SQL to the Connector; `EntityRepository` adds
generated CRUD statements for one entity type.
"""

from .base_repository import Repository
from .entity_repository import EntityRepository
from .statements import StatementBuilder

__all__ = [
    "EntityRepository",
    "Repository",
    "StatementBuilder",
]
