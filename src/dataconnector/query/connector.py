"""
Statement executor.

The Connector runs parameterized SQL against an Engine and maps the results: scalar
reads, streamed rows, bulk extraction and reflective entity mapping.

Every operation accepts `connection=`. Without it the operation checks a connection out
of the pool inside `engine.begin()` (commit on success, rollback on error) and returns it
on every exit path. With it, the operation runs on the caller's connection and leaves
transaction control to the caller:

    with connector.transaction() as tx:
        connector.execute("UPDATE stock SET qty = qty - :n WHERE sku = :sku", {...}, connection=tx)
        connector.execute("INSERT INTO movements ...", {...}, connection=tx)
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Type, TypeVar

from sqlalchemy.engine import Connection, CursorResult, Engine, Row

from dataconnector.config.settings import Settings, get_settings
from dataconnector.db.engine import create_engine_from_settings
from dataconnector.exceptions.mapper import constraint_error_handler
from dataconnector.mapping.entity import materialize
from dataconnector.mapping.protocols import ExtractorLike, MapperLike, apply_extractor, apply_mapper

from .binding import ROWCOUNT_COLUMN, PreparedStatement, prepare_statement, procedure_call
from .parameters import Parameters, normalize_parameters

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of Connector.execute().

    - rows_affected: row count reported by the driver (-1 when the driver cannot tell)
    - outputs: post-execution value of every output parameter, keyed by parameter name
    """

    rows_affected: int
    outputs: Mapping[str, Any] = field(default_factory=dict)


def _first_column(row: Row) -> Any:
    return row[0]


class Connector:
    """Executes statements and maps their results."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **engine_kwargs: Any) -> "Connector":
        """Create a Connector (and its Engine) from `settings`, or from the environment."""
        return cls(create_engine_from_settings(settings or get_settings(), **engine_kwargs))

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    # =================================================================================================================
    # Connection scope
    # =================================================================================================================

    @contextmanager
    def connect(self, connection: Connection | None = None) -> Iterator[Connection]:
        """Yield `connection` when given, otherwise a fresh connection in its own transaction."""
        if connection is not None:
            yield connection
            return

        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Open a connection with a transaction that commits when the block exits cleanly."""
        with self.engine.begin() as conn:
            yield conn

    def verify(self) -> None:
        """Open and close one connection. Raises the driver's error if the database is unreachable."""
        with self.engine.connect():
            pass
        logger.info("connector.verified", extra={"dialect": self.dialect_name})

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()

    # =================================================================================================================
    # Commands
    # =================================================================================================================

    def execute(
        self,
        sql: str,
        parameters: Parameters = None,
        *,
        is_procedure: bool = False,
        connection: Connection | None = None,
    ) -> ExecutionResult:
        """
        Execute a command (or stored procedure when `is_procedure`) and return the row count.

        With `is_procedure`, `sql` is the procedure name and the call is built from
        `parameters`.

        Raises:
            ForeignKeyConstraintError / DuplicateKeyError: on a foreign-key or unique-key
                violation.
            sqlalchemy.exc.SQLAlchemyError: any other failure, unchanged.
        """
        parameters = normalize_parameters(parameters)
        if is_procedure:
            sql = procedure_call(sql, parameters, self.dialect_name)

        statement = prepare_statement(sql, parameters, self.engine.dialect)
        self._log_start("execute", statement)
        start = time.perf_counter()

        with constraint_error_handler("execute"):
            with self.connect(connection) as conn:
                result = conn.execute(statement.clause)
                try:
                    rows_affected, out_values = self._read_outcome(statement, result)
                finally:
                    result.close()

        outputs = {name: out_values.get(key) for key, name in statement.output_names.items()}

        logger.debug(
            "connector.execute.success",
            extra={
                "rows_affected": rows_affected,
                "outputs": sorted(outputs),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return ExecutionResult(rows_affected=rows_affected, outputs=outputs)

    # =================================================================================================================
    # Queries
    # =================================================================================================================

    def select_value(
        self,
        sql: str,
        parameters: Parameters = None,
        mapper: MapperLike | None = None,
        *,
        default: Any = None,
        connection: Connection | None = None,
    ) -> Any:
        """
        Return the first row mapped by `mapper`, or its first column when no mapper is given.

        Returns `default` when the query produced no row, or when the first column is NULL.
        """
        statement = prepare_statement(sql, parameters)
        self._log_start("select_value", statement)

        with self.connect(connection) as conn:
            row = conn.execute(statement.clause).first()

            if row is None:
                return default
            if mapper is not None:
                value = apply_mapper(mapper, row)
            else:
                value = row[0]

        return default if value is None else value

    def select(
        self,
        sql: str,
        parameters: Parameters = None,
        mapper: MapperLike | None = None,
        *,
        extractor: ExtractorLike | None = None,
        extractor_args: tuple = (),
        connection: Connection | None = None,
    ) -> Iterator[Any] | list:
        """
        Run a query and map its rows.

        Streaming form (no extractor): returns a generator that reads and maps one row per
        step; without a mapper each item is the row's first column. The cursor and its
        connection stay open until the generator is exhausted or closed, so consume it
        fully or wrap it in contextlib.closing().

        Bulk form (`extractor`): the open result is handed to
        `extractor.extract(result, *extractor_args)` and its list is returned.
        """
        if mapper is not None and extractor is not None:
            raise ValueError("Pass either a row mapper or an extractor, not both")

        statement = prepare_statement(sql, parameters)

        if extractor is not None:
            self._log_start("select_extract", statement)
            with self.connect(connection) as conn:
                result = conn.execute(statement.clause)
                try:
                    return apply_extractor(extractor, result, *extractor_args)
                finally:
                    result.close()

        if mapper is None:
            transform = _first_column
        else:
            def transform(row: Row) -> Any:
                return apply_mapper(mapper, row)

        return self._stream(statement, transform, connection)

    def select_entity(
        self,
        entity_type: Type[T],
        sql: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
    ) -> T | None:
        """Map the first row onto a new `entity_type`; None when the query produced no row."""
        statement = prepare_statement(sql, parameters)
        self._log_start("select_entity", statement)

        with self.connect(connection) as conn:
            result = conn.execute(statement.clause)
            keys = list(result.keys())
            row = result.first()

        if row is None:
            return None
        return materialize(entity_type, dict(zip(keys, row)))

    def select_entities(
        self,
        entity_type: Type[T],
        sql: str,
        parameters: Parameters = None,
        *,
        connection: Connection | None = None,
    ) -> Iterator[T]:
        """Stream rows mapped onto new `entity_type` instances, one per step."""
        statement = prepare_statement(sql, parameters)
        return self._stream(statement, lambda row: materialize(entity_type, row._asdict()), connection)

    # =================================================================================================================
    # Helpers
    # =================================================================================================================

    def _stream(
        self,
        statement: PreparedStatement,
        transform: Callable[[Row], Any],
        connection: Connection | None,
    ) -> Iterator[Any]:
        self._log_start("select", statement)
        count = 0

        with self.connect(connection) as conn:
            result = conn.execute(statement.clause, execution_options={"stream_results": True})
            try:
                for row in result:
                    count += 1
                    yield transform(row)
            finally:
                result.close()
                logger.debug("connector.select.closed", extra={"rows": count})

    @staticmethod
    def _read_outcome(statement: PreparedStatement, result: CursorResult) -> tuple[int, Mapping[str, Any]]:
        """Row count and {bind key: value} of the outputs, wherever the dialect puts them."""
        if statement.outputs_in_row:
            row = result.mappings().first()
            if row is None:
                return -1, {}
            return row[ROWCOUNT_COLUMN], row
        if statement.uses_out_parameters:
            return result.rowcount, result.out_parameters or {}
        return result.rowcount, {}

    def _log_start(self, operation: str, statement: PreparedStatement) -> None:
        # bind names only, values may be sensitive
        logger.debug(
            f"connector.{operation}.start",
            extra={"operation": operation, "binds": [bind.key for bind in statement.binds]},
        )


__all__ = ["Connector", "ExecutionResult"]
