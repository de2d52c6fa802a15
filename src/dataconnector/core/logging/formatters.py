# src/dataconnector/core/logging/formatters.py
"""
Custom logging formatters.

  - JsonFormatter: structured JSON lines for log collectors. Includes the service, env,
    package version and correlation id, plus every `extra` field passed by the caller
    (non-serializable values are converted with str()).
  - ColorFormatter: compact ANSI-colored lines for a development console.

builder.make_dict_config() picks between them from LOG_FORMAT.

Library modules log event names with structured extras, for example:

    logger.debug("connector.execute.success", extra={"rows_affected": 1, "duration_ms": 3})

which JsonFormatter renders as {"message": "connector.execute.success", "rows_affected": 1, ...}.
"""
import json
import logging
from logging import LogRecord
from typing import Any

from dataconnector.utils.metadata import get_project_version

PROJECT_VERSION = get_project_version()

# Attributes every LogRecord carries; anything else on the record came from `extra`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction:
      - env: environment name ("development", "production", ...)
      - service: logical service name included in every line
      - datefmt: passed to logging.Formatter.formatTime
    """

    def __init__(self, *, env: str | None = None, service: str = "dataconnector", datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        for key, value in record.__dict__.items():
            if key in log_record or key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                log_record[key] = value
            except (TypeError, ValueError):
                log_record[key] = str(value)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development-friendly colored formatter.

    Line shape: TIMESTAMP | LEVEL | LOGGER | CORRELATION_ID | MESSAGE, with the level
    colorized and the traceback appended when exc_info is set.
    """

    COLOR_CODES = {
        "DEBUG": "\033[1;36;47m",  # bold cyan on white
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;41m",  # bold on red
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        reset = self.COLOR_CODES["RESET"]
        timestamp = self.formatTime(record, self.datefmt)

        base = (
            f"{timestamp} | {color}{record.levelname:<10}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'correlation_id', '-'):<10} | "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            base = base + "\n" + self.formatException(record.exc_info)

        return base


__all__ = ["JsonFormatter", "ColorFormatter", "PROJECT_VERSION"]
