"""
Exceptions raised by the data-access layer.

Only constraint violations are translated. Connection failures and every other driver
error propagate as the original SQLAlchemy exception, so callers keep the full native
diagnostics.
"""

from enum import Enum


class ConstraintKind(str, Enum):
    FOREIGN_KEY_CONSTRAINT = "foreign_key"
    DUPLICATE_KEY = "duplicate"


class RepositoryError(Exception):
    """
    Base exception for data-access errors.

    - message: human-friendly message
    - constraint: optional DB constraint name or identifier (for logs only)
    - error_code: canonical short code (e.g., 'duplicate', 'foreign_key')
    """

    def __init__(self, message: str, *, constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    def to_payload(self) -> dict:
        """Return a JSON-serializable dict without raw DB messages."""
        payload = {"detail": self.message}
        if self.error_code:
            payload["code"] = self.error_code
        return payload


class ConstraintViolationError(RepositoryError):
    """
    A statement violated a foreign key or a unique key.

    Branch on `kind` (or catch the subclasses) to tell "duplicate entry" apart from
    "referenced by other records". `referenced_table` is only set for foreign-key
    violations, and only when the driver message could be parsed.
    """

    kind: ConstraintKind

    def __init__(
        self,
        message: str,
        *,
        referenced_table: str | None = None,
        native_code: int | str | None = None,
        constraint: str | None = None,
    ):
        super().__init__(message, constraint=constraint, error_code=self.kind.value)
        self.referenced_table = referenced_table
        self.native_code = native_code


class ForeignKeyConstraintError(ConstraintViolationError):
    kind = ConstraintKind.FOREIGN_KEY_CONSTRAINT


class DuplicateKeyError(ConstraintViolationError):
    kind = ConstraintKind.DUPLICATE_KEY


__all__ = [
    "ConstraintKind",
    "RepositoryError",
    "ConstraintViolationError",
    "ForeignKeyConstraintError",
    "DuplicateKeyError",
]
