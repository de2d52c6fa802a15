"""
Handler factories for logging.dictConfig.

Each function returns a handler configuration dict built from Settings; builder.py
decides which of them are installed. Every handler runs the "correlation_id" and
"redact" filters.
"""
from pathlib import Path

from dataconnector.config.settings import Settings

HANDLER_FILTERS = ["correlation_id", "redact"]


def _formatter_name(settings: Settings) -> str:
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    """All records at LOG_LEVEL and above, on stderr."""
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": list(HANDLER_FILTERS),
    }


def get_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": str(Path(settings.LOG_DIR) / "dataconnector.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(HANDLER_FILTERS),
    }


def get_error_file_handler(settings: Settings) -> dict:
    # error files stay structured whatever LOG_FORMAT says
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "level": "ERROR",
        "filename": str(Path(settings.LOG_DIR) / "errors.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(HANDLER_FILTERS),
    }


def get_error_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": "json",
        "level": "ERROR",
        "filters": list(HANDLER_FILTERS),
    }


__all__ = [
    "get_console_handler",
    "get_file_handler",
    "get_error_file_handler",
    "get_error_console_handler",
]
