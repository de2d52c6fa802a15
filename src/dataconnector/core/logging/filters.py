# src/dataconnector/core/logging/filters.py
"""
Logging filters.

Correlation id
--------------
A correlation id ties together the log lines of one unit of work (a batch job, a
message being processed, a request handled by the calling application). It is kept in
a `contextvars.ContextVar`, so it follows the current thread and any task spawned from
it without being passed around:

    token = set_correlation_id("import-2024-05-01")
    try:
        repository.insert(customer)      # every log line carries correlation_id
    finally:
        reset_correlation_id(token)

CorrelationIdFilter guarantees every LogRecord has a `correlation_id` attribute
(explicit `extra`, then the context var, then the sentinel "-"), so formatters that
reference `%(correlation_id)s` never fail.

Redaction
---------
RedactFilter masks record attributes whose name is sensitive. Credentials are masked,
and so are `parameters` / `values`, the extras that could carry bound statement values.
"""
import contextvars
import logging
from logging import LogRecord

_correlation_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(correlation_id: str | None):
    """Set the correlation id for the current context; returns the token for reset_correlation_id()."""
    return _correlation_id_ctx.set(correlation_id)


def reset_correlation_id(token) -> None:
    _correlation_id_ctx.reset(token)


def get_correlation_id() -> str | None:
    return _correlation_id_ctx.get()


class CorrelationIdFilter(logging.Filter):
    """Stamps `record.correlation_id`; never drops a record."""

    def filter(self, record: LogRecord) -> bool:
        record.correlation_id = (
            getattr(record, "correlation_id", None) or get_correlation_id() or "-"
        )
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = {
        "password",
        "db_password",
        "secret",
        "token",
        "authorization",
        "connection_string",
        "parameters",
        "values",
    }
    MASK = "***REDACTED***"

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = self.MASK
        return True


__all__ = [
    "CorrelationIdFilter",
    "RedactFilter",
    "get_correlation_id",
    "reset_correlation_id",
    "set_correlation_id",
]
