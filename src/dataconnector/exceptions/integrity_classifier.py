import logging
import re
from dataclasses import dataclass
from typing import Any

from .base import ConstraintKind

logger = logging.getLogger(__name__)

# =================================================================================================================
# Native error codes
# =================================================================================================================

# SQL Server: https://learn.microsoft.com/sql/relational-databases/errors-events/database-engine-events-and-errors
# PostgreSQL: https://www.postgresql.org/docs/current/errcodes-appendix.html
# SQLite extended result codes: https://www.sqlite.org/rescode.html
# MySQL: https://dev.mysql.com/doc/mysql-errors/8.0/en/server-error-reference.html
NATIVE_CODE_KIND_MAP: dict[int | str, ConstraintKind] = {
    # SQL Server
    547: ConstraintKind.FOREIGN_KEY_CONSTRAINT,
    2627: ConstraintKind.DUPLICATE_KEY,  # unique/primary key constraint
    2601: ConstraintKind.DUPLICATE_KEY,  # unique index
    # PostgreSQL SQLSTATE
    "23503": ConstraintKind.FOREIGN_KEY_CONSTRAINT,
    "23505": ConstraintKind.DUPLICATE_KEY,
    # SQLite
    787: ConstraintKind.FOREIGN_KEY_CONSTRAINT,
    2067: ConstraintKind.DUPLICATE_KEY,  # SQLITE_CONSTRAINT_UNIQUE
    1555: ConstraintKind.DUPLICATE_KEY,  # SQLITE_CONSTRAINT_PRIMARYKEY
    # MySQL
    1451: ConstraintKind.FOREIGN_KEY_CONSTRAINT,
    1452: ConstraintKind.FOREIGN_KEY_CONSTRAINT,
    1062: ConstraintKind.DUPLICATE_KEY,
}

# pyodbc keeps the SQL Server error number inside the message: "... (547) (SQLExecDirectW)"
_ODBC_NUMBER = re.compile(r"\((?P<number>\d+)\)\s*\(SQL\w+\)")

# SQL Server:  The conflict occurred in database "shop", table "dbo.Customer", column 'ID'.
# PostgreSQL:  Key (customer_id)=(9) is not present in table "customers".
_TABLE_SEGMENT = re.compile(r'table "(?P<table>[^"]+)"')


@dataclass(frozen=True)
class ConstraintViolation:
    kind: ConstraintKind
    referenced_table: str | None = None
    native_code: int | str | None = None


# =================================================================================================================
# Native error inspection
# =================================================================================================================

def native_error_message(orig: Any) -> str:
    args = getattr(orig, "args", ())
    # pymssql: (number, b"message")
    if len(args) >= 2 and isinstance(args[0], int) and isinstance(args[1], bytes):
        return args[1].decode("utf-8", errors="replace")
    return str(orig)


def native_error_code(orig: Any) -> int | str | None:
    """
    Extract the driver's native error code from a DBAPI exception.

    Checks, in order: SQLSTATE (psycopg 3 `sqlstate`, psycopg2 `pgcode`), the SQLite
    extended result code, an explicit `number` (python-tds), an integer first argument
    (pymssql, PyMySQL, mysqlclient), and the number embedded in a pyodbc message.
    """
    for attribute in ("sqlstate", "pgcode"):
        code = getattr(orig, attribute, None)
        if code:
            return str(code)

    code = getattr(orig, "sqlite_errorcode", None)
    if isinstance(code, int):
        return code

    code = getattr(orig, "number", None)
    if isinstance(code, int):
        return code

    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]

    match = _ODBC_NUMBER.search(native_error_message(orig))
    if match:
        return int(match.group("number"))

    return None


def parse_referenced_table(message: str) -> str | None:
    """
    Best-effort extraction of the referenced table from a foreign-key violation message.

    Uses the last `table "..."` segment and strips any schema prefix ("dbo.Customer" ->
    "Customer"). Returns None when the message does not have that shape.
    """
    matches = _TABLE_SEGMENT.findall(message or "")
    if not matches:
        return None
    return matches[-1].rsplit(".", 1)[-1]


# =================================================================================================================
# Classifier
# =================================================================================================================

def classify_native_error(orig: Any) -> ConstraintViolation | None:
    """
    Classify a DBAPI exception as a foreign-key or duplicate-key violation.

    Returns None for every other error; the caller re-raises it untouched.
    """
    code = native_error_code(orig)
    kind = NATIVE_CODE_KIND_MAP.get(code) if code is not None else None

    if kind is None:
        logger.debug("integrity.unclassified", extra={"native_code": code})
        return None

    referenced_table = None
    if kind is ConstraintKind.FOREIGN_KEY_CONSTRAINT:
        message = native_error_message(orig)
        referenced_table = parse_referenced_table(message)
        if referenced_table is None:
            # Unparseable: classification stands, the table stays unknown
            logger.warning(
                "integrity.unparseable_foreign_key_message",
                extra={"native_code": code, "message_snippet": message[:200]},
            )

    logger.debug(
        "integrity.classified",
        extra={"native_code": code, "kind": kind.value, "referenced_table": referenced_table},
    )
    return ConstraintViolation(kind=kind, referenced_table=referenced_table, native_code=code)
