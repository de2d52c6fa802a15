# dataconnector/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # RepositoryError and the constraint-violation errors
# │   ├── integrity_classifier.py    # native error code -> ConstraintViolation
# │   └── mapper.py                  # driver error -> ConstraintViolationError

from .base import (
    ConstraintKind,
    ConstraintViolationError,
    DuplicateKeyError,
    ForeignKeyConstraintError,
    RepositoryError,
)
from .integrity_classifier import ConstraintViolation, classify_native_error
from .mapper import constraint_error_handler

__all__ = [
    "ConstraintKind",
    "ConstraintViolation",
    "ConstraintViolationError",
    "DuplicateKeyError",
    "ForeignKeyConstraintError",
    "RepositoryError",
    "classify_native_error",
    "constraint_error_handler",
]
