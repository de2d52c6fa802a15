# src/dataconnector/core/logging/builder.py
"""
Logging builder: create and apply a dictConfig logging configuration.

The library itself never configures logging; it only emits records through
`logging.getLogger(__name__)`. Applications (and the test suite) call:

    from dataconnector.config import get_settings
    from dataconnector.core.logging import setup_logging

    setup_logging(get_settings())

Handler selection:

| LOG_TO_STDOUT | LOG_DIR | handlers                       |
| ------------- | ------- | ------------------------------ |
| true          | any     | console + error_console        |
| false         | set     | console + file + error_file    |
| false         | empty   | console + error_console        |

SQLAlchemy's statement logger stays at WARNING unless ENABLE_SQL_LOGGING is set;
statement logs include bound values.
"""
from __future__ import annotations

import logging
import logging.config
from pathlib import Path

from dataconnector.config.settings import Settings
from dataconnector.utils.metadata import get_project_name

from .filters import CorrelationIdFilter, RedactFilter
from .formatters import ColorFormatter, JsonFormatter
from .handlers import (
    get_console_handler,
    get_error_console_handler,
    get_error_file_handler,
    get_file_handler,
)


def _writes_files(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping for `settings`.

    The mapping includes:
      - formatters: "standard" (color or plain text) and "json"
      - filters: "correlation_id", "redact"
      - handlers: console, plus file/error_file or error_console
      - loggers: root, dataconnector, sqlalchemy.engine
    """
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(correlation_id)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(),
        },
    }

    filters = {
        "correlation_id": {"()": CorrelationIdFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if _writes_files(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            "dataconnector": {
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            # statement logs carry bound values
            "sqlalchemy.engine": {
                "level": "INFO" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply the logging configuration for `settings`.

    Creates LOG_DIR when file logging is enabled, applies dictConfig, and installs a
    CorrelationIdFilter on the root logger so `%(correlation_id)s` always resolves.
    """
    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))
    logging.getLogger().addFilter(CorrelationIdFilter())


__all__ = ["make_dict_config", "setup_logging"]
