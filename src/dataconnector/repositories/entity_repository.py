"""
Entity repository.

Generates the CRUD statements for one entity type from its descriptor and runs them
through the Connector:

    class CustomerRepository(EntityRepository[Customer]):
        entity_type = Customer
        table_name = "customers"        # optional, overrides Customer.__tablename__

        def on_before_insert(self, customer: Customer) -> None:
            customer.name = customer.name.strip()

    repository = CustomerRepository(connector)
    customer_id = repository.insert_returning(Customer(name="Ada"))
    repository.get_by_id(customer_id)

Table name resolution: `table_name` on the repository class, then the entity's
`__tablename__`, then the entity class name.

Hooks are no-ops meant to be overridden. Each runs once per operation and never after
the operation raised. `on_after_select_entity` runs for the entities produced by `all()`
and `get_by_id()`; lookups that find nothing do not call it.
"""
from __future__ import annotations

import logging
import time
from functools import cached_property
from typing import Any, ClassVar, Generic, Iterator, Type, TypeVar

from pydantic import BaseModel

from dataconnector.exceptions.mapper import constraint_error_handler
from dataconnector.mapping.entity import EntityDescriptor, describe_entity, insert_values
from dataconnector.query.parameters import Parameters, QueryParameter

from .base_repository import Repository
from .statements import StatementBuilder

logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity", bound=BaseModel)
T = TypeVar("T", bound=BaseModel)


def entity_parameters(entity: BaseModel) -> list[QueryParameter]:
    """
    One parameter per non-identity column of `entity`, bound as a single value.

    Collection-typed fields are column values, not IN lists, so they are never expanded.
    """
    return [QueryParameter(name, value, expand=False) for name, value in insert_values(entity).items()]


class EntityRepository(Repository, Generic[TEntity]):
    """
    Generic CRUD repository for one pydantic entity type.

    Class attributes:
        entity_type: the managed entity class (required)
        table_name: overrides the table derived from the entity
        id_column: key column used by get_by_id() and delete()
    """

    entity_type: ClassVar[Type[BaseModel]]
    table_name: ClassVar[str | None] = None
    id_column: ClassVar[str] = "id"

    # =================================================================================================================
    # Statement templates
    # =================================================================================================================

    @cached_property
    def descriptor(self) -> EntityDescriptor:
        entity_type = getattr(type(self), "entity_type", None)
        if entity_type is None:
            raise TypeError(f"{type(self).__name__} does not declare an entity_type")
        return describe_entity(entity_type)

    @cached_property
    def table(self) -> str:
        return self.table_name or self.descriptor.table_name

    @cached_property
    def statements(self) -> StatementBuilder:
        return StatementBuilder(self.connector.engine.dialect)

    @cached_property
    def select_sql(self) -> str:
        return self.statements.select(self.descriptor, self.table)

    @cached_property
    def select_by_id_sql(self) -> str:
        return self.statements.select_by_id(self.descriptor, self.table, self.id_column)

    @cached_property
    def insert_sql(self) -> str:
        return self.statements.insert(self.descriptor, self.table)

    @cached_property
    def delete_sql(self) -> str:
        return self.statements.delete(self.table, self.id_column)

    def insert_returning_sql(self, identity_column: str) -> str:
        return self.statements.insert_returning(self.descriptor, self.table, identity_column)

    # =================================================================================================================
    # Hooks
    # =================================================================================================================

    def on_before_insert(self, entity: TEntity) -> None:
        pass

    def on_after_insert(self, entity: TEntity, identity: Any = None) -> None:
        pass

    def on_after_select_entity(self, entity: TEntity) -> None:
        pass

    def on_before_delete(self, id: Any) -> None:
        pass

    def on_after_delete(self, id: Any) -> None:
        pass

    # =================================================================================================================
    # Create
    # =================================================================================================================

    def insert(self, entity: TEntity) -> bool:
        """
        Insert `entity`; identity columns are left to the database.

        Returns:
            True when the statement reported at least one affected row.

        Raises:
            ConstraintViolationError: on a foreign-key or duplicate-key violation.
        """
        self.on_before_insert(entity)

        start = time.perf_counter()
        result = self.execute(self.insert_sql, entity_parameters(entity))

        logger.info(
            "repo.insert.success",
            extra={
                "entity": type(entity).__name__,
                "table": self.table,
                "rows_affected": result.rows_affected,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )

        self.on_after_insert(entity)
        return result.rows_affected > 0

    def insert_returning(self, entity: TEntity, identity_column: str | None = None) -> Any:
        """
        Insert `entity` and return the value the database generated for `identity_column`.

        `identity_column` defaults to the entity's only Identity() column, else `id_column`.
        """
        identity_column = identity_column or self._default_identity_column()
        self.on_before_insert(entity)

        start = time.perf_counter()
        with constraint_error_handler("insert_returning"):
            identity = self.get(self.insert_returning_sql(identity_column), entity_parameters(entity))

        logger.info(
            "repo.insert_returning.success",
            extra={
                "entity": type(entity).__name__,
                "table": self.table,
                "identity": identity,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )

        self.on_after_insert(entity, identity)
        return identity

    # =================================================================================================================
    # Read
    # =================================================================================================================

    def all(self) -> Iterator[TEntity]:
        """Stream every row of the table as an entity."""
        return self._after_select(
            self.connector.select_entities(self.descriptor.entity_type, self.select_sql, connection=self.connection)
        )

    def get_by_id(self, id: Any) -> TEntity | None:
        entity = self.connector.select_entity(
            self.descriptor.entity_type,
            self.select_by_id_sql,
            {self.id_column: id},
            connection=self.connection,
        )
        if entity is None:
            logger.debug("repo.get_by_id.not_found", extra={"table": self.table, "id": id})
            return None

        self.on_after_select_entity(entity)
        return entity

    def get_entity(
        self, sql: str, parameters: Parameters = None, entity_type: Type[T] | None = None
    ) -> T | TEntity | None:
        """First row of `sql` as `entity_type` (the repository's entity by default), or None."""
        return self.connector.select_entity(
            entity_type or self.descriptor.entity_type, sql, parameters, connection=self.connection
        )

    def get_entities(self, sql: str, parameters: Parameters = None, entity_type: Type[T] | None = None) -> Iterator:
        """Stream the rows of `sql` as `entity_type` (the repository's entity by default)."""
        return self.connector.select_entities(
            entity_type or self.descriptor.entity_type, sql, parameters, connection=self.connection
        )

    # =================================================================================================================
    # Delete
    # =================================================================================================================

    def delete(self, id: Any) -> int:
        """Delete the row with `id`. Returns the number of rows removed (0 when there was none)."""
        self.on_before_delete(id)

        result = self.execute(self.delete_sql, {self.id_column: id})
        logger.info(
            "repo.delete.success",
            extra={"table": self.table, "id": id, "rows_affected": result.rows_affected},
        )

        self.on_after_delete(id)
        return result.rows_affected

    # =================================================================================================================
    # Helpers
    # =================================================================================================================

    def _default_identity_column(self) -> str:
        identity_columns = self.descriptor.identity_columns
        if len(identity_columns) == 1:
            return next(iter(identity_columns))
        return self.id_column

    def _after_select(self, entities: Iterator[TEntity]) -> Iterator[TEntity]:
        try:
            for entity in entities:
                self.on_after_select_entity(entity)
                yield entity
        finally:
            entities.close()


__all__ = ["EntityRepository", "entity_parameters"]
