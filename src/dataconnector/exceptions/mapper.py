import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError

from .base import (
    ConstraintKind,
    ConstraintViolationError,
    DuplicateKeyError,
    ForeignKeyConstraintError,
)
from .integrity_classifier import ConstraintViolation, classify_native_error

logger = logging.getLogger(__name__)


EXCEPTION_CLASSES: dict[ConstraintKind, type[ConstraintViolationError]] = {
    ConstraintKind.FOREIGN_KEY_CONSTRAINT: ForeignKeyConstraintError,
    ConstraintKind.DUPLICATE_KEY: DuplicateKeyError,
}


def to_constraint_error(violation: ConstraintViolation, exc: DBAPIError) -> ConstraintViolationError:
    """Build the ConstraintViolationError for a classified driver error."""
    exception_class = EXCEPTION_CLASSES[violation.kind]

    if violation.kind is ConstraintKind.DUPLICATE_KEY:
        message = "Record already exists (duplicate key)"
    elif violation.referenced_table:
        message = f"Foreign key constraint violated (table: {violation.referenced_table})"
    else:
        message = "Foreign key constraint violated"

    # Keep the raw DB message at DEBUG level only
    logger.debug("mapper.constraint_violation_raw", extra={"raw": str(exc.orig)})

    return exception_class(
        message,
        referenced_table=violation.referenced_table,
        native_code=violation.native_code,
    )


@contextmanager
def constraint_error_handler(operation: str | None = None) -> Iterator[None]:
    """
    Translate driver constraint violations raised inside the block.

    Usage:
        with constraint_error_handler("execute"):
            connection.execute(statement)

    Foreign-key and duplicate-key violations are re-raised as ConstraintViolationError
    (chained to the original). Every other error leaves the block unchanged.
    """
    try:
        yield
    except DBAPIError as exc:
        violation = classify_native_error(exc.orig)
        if violation is None:
            raise

        # INFO: constraint violations are expected, caller-level outcomes
        logger.info(
            "mapper.constraint_violation",
            extra={
                "operation": operation,
                "kind": violation.kind.value,
                "native_code": violation.native_code,
                "referenced_table": violation.referenced_table,
            },
        )
        raise to_constraint_error(violation, exc) from exc
