"""
Parameter binding.

Turns SQL text plus QueryParameters into an executable SQLAlchemy TextClause.

For each parameter, in order:
  1. A special binding kind (binary, XML, image) binds one scalar with that type,
     whatever the shape of the value.
  2. A non-string iterable value is expanded (unless the parameter opts out with
     expand=False): one synthetic bind per element named `<key>__<index>`, and every
     `:<key>` token in the text is replaced with the comma-joined synthetic
     placeholders. `WHERE id IN (:ids)` with ids=[4, 7] becomes
     `WHERE id IN (:ids__0, :ids__1)`.
  3. Anything else binds one scalar; None binds NULL.

Output parameters are read back in one of two ways, depending on the dialect:
  - dialects with driver-level OUT parameters (Oracle) flag the bind with
    `isoutparam` and SQLAlchemy returns the values in `CursorResult.out_parameters`;
  - SQL Server runs the statement as a batch: every output placeholder becomes a
    T-SQL variable declared from the bound input value, and a trailing SELECT
    returns @@ROWCOUNT plus the variables as one row.

Other dialects have no output mechanism; their outputs come back as None.

Placeholders use SQLAlchemy's `:name` syntax.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Integer, LargeBinary, String, UnicodeText, bindparam, text
from sqlalchemy.dialects import mssql
from sqlalchemy.engine import Dialect
from sqlalchemy.sql.elements import BindParameter, TextClause
from sqlalchemy.types import NullType, TypeEngine

from .parameters import BindingKind, Parameters, QueryParameter, normalize_parameters

logger = logging.getLogger(__name__)


BINDING_TYPES: dict[BindingKind, TypeEngine] = {
    BindingKind.BINARY: LargeBinary().with_variant(mssql.VARBINARY("max"), "mssql"),
    BindingKind.XML: UnicodeText().with_variant(mssql.XML(), "mssql"),
    BindingKind.IMAGE: LargeBinary().with_variant(mssql.IMAGE(), "mssql"),
}

# Dialects whose drivers return OUT parameter values through the cursor.
OUT_PARAMETER_DIALECTS = frozenset({"oracle"})

# Column of the SQL Server output batch row holding the statement's row count.
ROWCOUNT_COLUMN = "__rows_affected"

# Values that are iterable but bind as a single scalar.
_SCALAR_ITERABLES = (str, bytes, bytearray, memoryview, Mapping)


@dataclass
class PreparedStatement:
    """SQL text after expansion, the binds attached to it and the output slots to read back."""

    sql: str
    binds: list[BindParameter] = field(default_factory=list)
    # bind key -> parameter name as the caller spelled it
    output_names: dict[str, str] = field(default_factory=dict)
    # outputs come back as the single row of a trailing SELECT (SQL Server batches)
    outputs_in_row: bool = False

    @property
    def clause(self) -> TextClause:
        return text(self.sql).bindparams(*self.binds)

    @property
    def bound_values(self) -> dict[str, Any]:
        return {bind.key: bind.value for bind in self.binds}

    @property
    def uses_out_parameters(self) -> bool:
        return any(bind.isoutparam for bind in self.binds)


def is_expandable(value: Any) -> bool:
    """True for values bound as a list of placeholders (lists, tuples, sets, generators...)."""
    return isinstance(value, Iterable) and not isinstance(value, _SCALAR_ITERABLES)


def placeholder_pattern(key: str) -> re.Pattern:
    # whole token only: `:id` must not match inside `:ids` or a `::id` cast
    return re.compile(rf"(?<![:\w]):{re.escape(key)}(?!\w)")


def procedure_call(name: str, parameters: list[QueryParameter], dialect_name: str) -> str:
    """
    Build the statement that invokes stored procedure `name` with `parameters`.

    SQL Server uses EXEC with named arguments; other backends use CALL.
    """
    keys = [parameter.key for parameter in parameters]
    if dialect_name == "mssql":
        arguments = ", ".join(
            f"@{key}=:{key}{' OUTPUT' if parameter.is_output else ''}"
            for key, parameter in zip(keys, parameters)
        )
        return f"EXEC {name} {arguments}".rstrip()
    return f"CALL {name}({', '.join(f':{key}' for key in keys)})"


def prepare_statement(sql: str, parameters: Parameters = None, dialect: Dialect | None = None) -> PreparedStatement:
    """
    Bind `parameters` into `sql` for execution on `dialect`.

    Parameters whose placeholder does not occur in the text are skipped, the same way
    native drivers ignore parameters the statement never references. Without a dialect
    the statement is prepared dialect-neutral: output parameters are recorded but not
    wired to any read-back mechanism.
    """
    statement = PreparedStatement(sql=sql)
    out_binds = dialect is not None and dialect.name in OUT_PARAMETER_DIALECTS

    for parameter in normalize_parameters(parameters):
        key = parameter.key
        pattern = placeholder_pattern(key)

        if not pattern.search(statement.sql):
            logger.debug("binding.unused_parameter", extra={"parameter": parameter.name})
            continue

        isoutparam = parameter.is_output and out_binds

        if parameter.is_special:
            statement.binds.append(
                bindparam(key, parameter.value, type_=BINDING_TYPES[parameter.binding_kind], isoutparam=isoutparam)
            )

        elif parameter.expand and not parameter.is_output and is_expandable(parameter.value):
            values = list(parameter.value)
            names = [f"{key}__{position}" for position in range(len(values))]
            replacement = ", ".join(f":{name}" for name in names)

            statement.sql = pattern.sub(lambda _match: replacement, statement.sql)
            statement.binds.extend(bindparam(name, value) for name, value in zip(names, values))

            logger.debug("binding.expanded", extra={"parameter": parameter.name, "count": len(values)})
            continue

        else:
            statement.binds.append(bindparam(key, parameter.value, isoutparam=isoutparam))

        if parameter.is_output:
            statement.output_names[key] = parameter.name

    if statement.output_names and dialect is not None and dialect.name == "mssql":
        _read_outputs_in_batch(statement, dialect)

    return statement


def _declared_type(bind: BindParameter) -> TypeEngine:
    # T-SQL variables cannot be TEXT, NTEXT or IMAGE
    type_ = bind.type
    if isinstance(type_, NullType) or (isinstance(type_, String) and type_.length is None):
        return mssql.NVARCHAR("max")
    if isinstance(type_, LargeBinary):
        return mssql.VARBINARY("max")
    if isinstance(type_, Integer):
        return mssql.BIGINT()
    return type_


def _read_outputs_in_batch(statement: PreparedStatement, dialect: Dialect) -> None:
    """
    Rewrite `statement` into a T-SQL batch that returns its outputs as a row.

        DECLARE @new_id BIGINT = :new_id;
        SET NOCOUNT ON;
        EXEC dbo.create_order @customer=:customer, @new_id=@new_id OUTPUT;
        SELECT @@ROWCOUNT AS __rows_affected, @new_id AS new_id
    """
    quote = dialect.identifier_preparer.quote
    binds = {bind.key: bind for bind in statement.binds}

    body = statement.sql.rstrip().rstrip(";")
    declarations = []
    for key in statement.output_names:
        body = placeholder_pattern(key).sub(lambda _match, key=key: f"@{key}", body)
        declared = _declared_type(binds[key]).compile(dialect=dialect)
        declarations.append(f"DECLARE @{key} {declared} = :{key};")

    selected = ", ".join(
        [f"@@ROWCOUNT AS {quote(ROWCOUNT_COLUMN)}"] + [f"@{key} AS {quote(key)}" for key in statement.output_names]
    )
    statement.sql = "\n".join([*declarations, "SET NOCOUNT ON;", f"{body};", f"SELECT {selected}"])
    statement.outputs_in_row = True


__all__ = [
    "BINDING_TYPES",
    "OUT_PARAMETER_DIALECTS",
    "ROWCOUNT_COLUMN",
    "PreparedStatement",
    "is_expandable",
    "placeholder_pattern",
    "procedure_call",
    "prepare_statement",
]
