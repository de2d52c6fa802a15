"""
Base repository class.

A thin layer over the Connector: it owns no SQL and no reflection, it only forwards
reads and commands with an optional row mapper or bulk extractor.

Repositories that need custom queries subclass it and call `get`, `get_list` and
`execute` with their own SQL:

    class StockRepository(Repository):
        def quantity(self, sku: str) -> int:
            return self.get("SELECT qty FROM stock WHERE sku = :sku", {"sku": sku}, default=0)

A repository may be bound to a transaction with `using(connection)`; every call made
through the bound copy then runs on that connection, and commit/rollback stay with
whoever opened the transaction:

    with connector.transaction() as tx:
        stock = StockRepository(connector).using(tx)
        ...
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Iterator

from sqlalchemy.engine import Connection

from dataconnector.mapping.protocols import ExtractorLike, MapperLike
from dataconnector.query.connector import Connector, ExecutionResult
from dataconnector.query.parameters import Parameters

logger = logging.getLogger(__name__)


class Repository:
    """
    Generic base repository.

    Args:
        connector: executes the statements
        connection: optional open connection (usually a transaction) every call runs on
    """

    def __init__(self, connector: Connector, connection: Connection | None = None):
        self.connector = connector
        self.connection = connection

    def using(self, connection: Connection | None):
        """Return a copy of this repository bound to `connection`."""
        bound = copy.copy(self)
        bound.connection = connection
        return bound

    # =================================================================================================================
    # Reads
    # =================================================================================================================

    def get(
        self,
        sql: str,
        parameters: Parameters = None,
        mapper: MapperLike | None = None,
        *,
        default: Any = None,
    ) -> Any:
        """Single value: the first row through `mapper`, or its first column. `default` when absent."""
        return self.connector.select_value(
            sql, parameters, mapper, default=default, connection=self.connection
        )

    def get_list(
        self,
        sql: str,
        parameters: Parameters = None,
        mapper: MapperLike | None = None,
        *,
        extractor: ExtractorLike | None = None,
        extractor_args: tuple = (),
    ) -> Iterator[Any] | list:
        """
        Rows through `mapper` (streamed), or the list built by `extractor`.

        See Connector.select for the streaming contract.
        """
        return self.connector.select(
            sql,
            parameters,
            mapper,
            extractor=extractor,
            extractor_args=extractor_args,
            connection=self.connection,
        )

    # =================================================================================================================
    # Commands
    # =================================================================================================================

    def execute(self, sql: str, parameters: Parameters = None, *, is_procedure: bool = False) -> ExecutionResult:
        """Run a command or stored procedure. Constraint violations raise ConstraintViolationError."""
        return self.connector.execute(sql, parameters, is_procedure=is_procedure, connection=self.connection)


__all__ = ["Repository"]
