"""
Engine factory.

Builds the synchronous SQLAlchemy Engine every Connector runs on. The Engine owns the
connection pool; connections are checked out per operation and returned on exit.
"""
from typing import Any
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from dataconnector.config.settings import Settings

logger = logging.getLogger(__name__)


# Name of the DBAPI connect() keyword that carries the connect timeout, per backend.
_CONNECT_TIMEOUT_ARGS = {
    "mssql": "timeout",
    "postgresql": "connect_timeout",
    "mysql": "connect_timeout",
    "sqlite": "timeout",
}


def _connect_args(settings: Settings) -> dict[str, Any]:
    backend = settings.DATABASE_URL.get_backend_name()
    args: dict[str, Any] = {}

    timeout_arg = _CONNECT_TIMEOUT_ARGS.get(backend)
    if timeout_arg and settings.DB_CONNECT_TIMEOUT > 0:
        args[timeout_arg] = settings.DB_CONNECT_TIMEOUT

    if settings.DB_APPLICATION_NAME and backend == "postgresql":
        args["application_name"] = settings.DB_APPLICATION_NAME

    return args


def create_engine_from_settings(settings: Settings, **engine_kwargs: Any) -> Engine:
    """
    Create an Engine for the database described by `settings`.

    Extra keyword arguments are passed straight to sqlalchemy.create_engine() and
    override the defaults chosen here.
    """
    url = settings.DATABASE_URL

    options: dict[str, Any] = {
        "echo": settings.SQLALCHEMY_ECHO,
        "pool_pre_ping": True,  # connection health check on checkout
        "connect_args": _connect_args(settings),
    }
    options.update(engine_kwargs)

    engine = create_engine(url, **options)

    if url.get_backend_name() == "sqlite":
        # SQLite ships with foreign key enforcement switched off
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.debug(
        "engine.created",
        extra={"backend": url.get_backend_name(), "driver": url.get_driver_name(), "database": url.database},
    )
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()
