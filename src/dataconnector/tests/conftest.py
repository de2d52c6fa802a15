"""
Core pytest configuration for the entire test suite.

Only the database setup and logging live here. Domain fixtures (entities, repositories,
sample data) are in tests/test_fixtures/repository_fixtures.py and re-exported below.

Every test gets its own file-backed SQLite database under tmp_path. A file (not
:memory:) is required because each Connector operation checks out its own pooled
connection, and every connection must see the same data.
"""

from __future__ import annotations

import logging
from typing import Iterator

# Silence noisy third-party loggers before importing them
NOISY_LOGGERS = (
    "faker",
    "faker.factory",
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "sqlalchemy.pool",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from sqlalchemy import text
from sqlalchemy.engine import Engine

from dataconnector.config.settings import Settings
from dataconnector.core.logging.builder import setup_logging
from dataconnector.db.engine import create_engine_from_settings
from dataconnector.query.connector import Connector

LOGGING_SETTINGS = Settings(ENV="testing", LOG_LEVEL="WARNING", LOG_FORMAT="text", LOG_TO_STDOUT=True)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install the package logging configuration once for the test session.

    Tests asserting on log records raise the level they need with caplog.set_level().
    """
    setup_logging(LOGGING_SETTINGS)
    yield


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------

SCHEMA = (
    """
    CREATE TABLE customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(100) NOT NULL,
        email_address VARCHAR(200) UNIQUE,
        status INTEGER NOT NULL DEFAULT 1,
        balance_cents INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER NOT NULL REFERENCES customers (id),
        reference VARCHAR(50) NOT NULL,
        quantity INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE Product (
        id INTEGER PRIMARY KEY,
        sku VARCHAR(30) NOT NULL
    )
    """,
    """
    CREATE TABLE documents (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        payload BLOB,
        body TEXT
    )
    """,
)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        ENV="testing",
        DB_URL=f"sqlite:///{tmp_path / 'dataconnector.db'}",
        LOG_TO_STDOUT=True,
    )


@pytest.fixture()
def engine(settings: Settings) -> Iterator[Engine]:
    engine = create_engine_from_settings(settings)

    with engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))

    yield engine

    engine.dispose()


@pytest.fixture()
def connector(engine: Engine) -> Connector:
    return Connector(engine)


# Repository test fixtures
from .test_fixtures.repository_fixtures import (  # noqa: E402
    fake,
    make_customer,
    customer_repository,
    recording_repository,
    order_repository,
    product_repository,
    inserted_customers,
)
