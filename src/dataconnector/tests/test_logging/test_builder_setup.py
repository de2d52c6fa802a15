# src/dataconnector/tests/test_logging/test_builder_setup.py
import logging

from dataconnector.config.settings import Settings
from dataconnector.core.logging.builder import make_dict_config, setup_logging
from dataconnector.core.logging.filters import CorrelationIdFilter


def file_settings(log_dir) -> Settings:
    return Settings(ENV="testing", LOG_FORMAT="json", LOG_TO_STDOUT=False, LOG_DIR=log_dir, LOG_MAX_BYTES=1000, LOG_BACKUP_COUNT=1)


def test_make_dict_config_with_files(tmp_path):
    cfg = make_dict_config(file_settings(tmp_path))

    assert set(cfg["handlers"]) == {"console", "file", "error_file"}
    assert cfg["handlers"]["file"]["filename"] == str(tmp_path / "dataconnector.log")
    assert cfg["handlers"]["error_file"]["level"] == "ERROR"
    assert set(cfg["filters"]) == {"correlation_id", "redact"}
    assert "json" in cfg["formatters"]


def test_make_dict_config_stdout_only():
    cfg = make_dict_config(Settings(ENV="testing", LOG_TO_STDOUT=True))

    assert set(cfg["handlers"]) == {"console", "error_console"}


def test_sql_logging_toggle():
    quiet = make_dict_config(Settings(ENABLE_SQL_LOGGING=False))
    verbose = make_dict_config(Settings(ENABLE_SQL_LOGGING=True))

    assert quiet["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"
    assert verbose["loggers"]["sqlalchemy.engine"]["level"] == "INFO"


def test_setup_logging_creates_log_dir(tmp_path):
    log_dir = tmp_path / "logs"
    assert not log_dir.exists()

    setup_logging(file_settings(log_dir))
    try:
        assert log_dir.exists()
        root = logging.getLogger()
        assert root.handlers
        assert any(isinstance(f, CorrelationIdFilter) for f in root.filters)
    finally:
        # restore the session configuration for the remaining tests
        from dataconnector.tests.conftest import LOGGING_SETTINGS
        setup_logging(LOGGING_SETTINGS)
