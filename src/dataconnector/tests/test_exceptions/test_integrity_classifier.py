import logging

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from dataconnector.exceptions.base import (
    ConstraintKind,
    ConstraintViolationError,
    DuplicateKeyError,
    ForeignKeyConstraintError,
    RepositoryError,
)
from dataconnector.exceptions.integrity_classifier import (
    classify_native_error,
    native_error_code,
    parse_referenced_table,
)
from dataconnector.exceptions.mapper import constraint_error_handler

MSSQL_FK_MESSAGE = (
    'The DELETE statement conflicted with the REFERENCE constraint "FK_Order_Customer". '
    'The conflict occurred in database "shop", table "dbo.Order", column \'CustomerID\'.'
)


class FakeDriverError(Exception):
    """Stand-in for a DBAPI exception: positional args plus driver-specific attributes."""

    def __init__(self, *args, **attributes):
        super().__init__(*args)
        for name, value in attributes.items():
            setattr(self, name, value)


class TestClassifier:

    def test_547_is_foreign_key_with_table(self):
        violation = classify_native_error(FakeDriverError(547, MSSQL_FK_MESSAGE.encode()))

        assert violation.kind is ConstraintKind.FOREIGN_KEY_CONSTRAINT
        assert violation.referenced_table == "Order"
        assert violation.native_code == 547

    @pytest.mark.parametrize("code", [2627, 2601])
    def test_unique_codes_are_duplicate_key(self, code):
        violation = classify_native_error(FakeDriverError(code, b"Cannot insert duplicate key row"))

        assert violation.kind is ConstraintKind.DUPLICATE_KEY
        assert violation.referenced_table is None

    @pytest.mark.parametrize("code", [208, 1205, 50000])
    def test_other_codes_are_unclassified(self, code):
        assert classify_native_error(FakeDriverError(code, b"something else")) is None

    def test_pyodbc_message_carries_the_number(self):
        message = (
            "[23000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]The INSERT statement conflicted "
            'with the FOREIGN KEY constraint "FK_Order_Customer". The conflict occurred in database "shop", '
            "table \"dbo.Customer\", column 'ID'. (547) (SQLExecDirectW)"
        )
        orig = FakeDriverError("23000", message)

        assert native_error_code(orig) == 547
        assert classify_native_error(orig).referenced_table == "Customer"

    def test_postgres_sqlstate(self):
        orig = FakeDriverError(
            'insert or update on table "orders" violates foreign key constraint "orders_customer_id_fkey"\n'
            'DETAIL:  Key (customer_id)=(9) is not present in table "customers".',
            sqlstate="23503",
        )

        violation = classify_native_error(orig)

        assert violation.kind is ConstraintKind.FOREIGN_KEY_CONSTRAINT
        assert violation.referenced_table == "customers"
        assert violation.native_code == "23503"

    def test_psycopg2_pgcode_duplicate(self):
        orig = FakeDriverError("duplicate key value violates unique constraint", pgcode="23505")
        assert classify_native_error(orig).kind is ConstraintKind.DUPLICATE_KEY

    def test_sqlite_extended_code(self):
        orig = FakeDriverError("UNIQUE constraint failed: customers.email_address", sqlite_errorcode=2067)
        assert classify_native_error(orig).kind is ConstraintKind.DUPLICATE_KEY

    def test_unparseable_foreign_key_message_logs_warning(self, caplog):
        caplog.set_level(logging.WARNING, logger="dataconnector")

        violation = classify_native_error(FakeDriverError(547, b"constraint conflict"))

        assert violation.kind is ConstraintKind.FOREIGN_KEY_CONSTRAINT
        assert violation.referenced_table is None
        assert [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING] == [
            "integrity.unparseable_foreign_key_message"
        ]

    @pytest.mark.parametrize(
        "message, expected",
        [
            ('... table "dbo.Customer", column \'ID\'.', "Customer"),
            ('... table "Customer", column \'ID\'.', "Customer"),
            ('on table "orders" ... in table "customers".', "customers"),
            ("no table here", None),
            ("", None),
        ],
    )
    def test_parse_referenced_table(self, message, expected):
        assert parse_referenced_table(message) == expected


class TestConstraintErrorHandler:

    def test_classified_error_is_translated_and_chained(self):
        db_error = IntegrityError("INSERT INTO customers ...", {}, FakeDriverError(2627, b"duplicate"))

        with pytest.raises(DuplicateKeyError) as exc_info:
            with constraint_error_handler("insert"):
                raise db_error

        assert exc_info.value.__cause__ is db_error
        assert exc_info.value.native_code == 2627

    def test_foreign_key_error_message_names_table(self):
        db_error = IntegrityError("DELETE FROM customers ...", {}, FakeDriverError(547, MSSQL_FK_MESSAGE.encode()))

        with pytest.raises(ForeignKeyConstraintError) as exc_info:
            with constraint_error_handler():
                raise db_error

        error = exc_info.value
        assert error.referenced_table == "Order"
        assert error.message == "Foreign key constraint violated (table: Order)"

    def test_unclassified_error_passes_through_unchanged(self):
        db_error = IntegrityError("INSERT ...", {}, FakeDriverError(515, b"cannot insert NULL"))

        with pytest.raises(IntegrityError) as exc_info:
            with constraint_error_handler():
                raise db_error

        assert exc_info.value is db_error

    def test_connection_failures_are_not_translated(self):
        with pytest.raises(OperationalError):
            with constraint_error_handler():
                raise OperationalError("connect", {}, FakeDriverError(2, b"unable to connect"))

    def test_non_database_errors_pass_through(self):
        with pytest.raises(ValueError):
            with constraint_error_handler():
                raise ValueError("not a database error")


class TestErrorTypes:

    def test_constraint_errors_share_a_base(self):
        assert issubclass(DuplicateKeyError, ConstraintViolationError)
        assert issubclass(ForeignKeyConstraintError, RepositoryError)

    def test_error_code_and_payload(self):
        error = DuplicateKeyError("Record already exists (duplicate key)", native_code=2627)

        assert error.kind is ConstraintKind.DUPLICATE_KEY
        assert error.error_code == "duplicate"
        assert error.to_payload() == {"detail": "Record already exists (duplicate key)", "code": "duplicate"}
        assert str(error) == "Record already exists (duplicate key) (code: duplicate)"
