import pytest
from sqlalchemy import LargeBinary, UnicodeText
from sqlalchemy.dialects import mssql, oracle, sqlite

from dataconnector.query.binding import is_expandable, prepare_statement, procedure_call
from dataconnector.query.parameters import (
    BindingKind,
    QueryParameter,
    binary_parameter,
    image_parameter,
    normalize_parameters,
    output_parameter,
    xml_parameter,
)


class TestQueryParameter:

    @pytest.mark.parametrize("name", ["ID", "@ID", ":ID"])
    def test_key_strips_placeholder_prefix(self, name):
        assert QueryParameter(name, 1).key == "ID"

    def test_single_builds_one_element_list(self):
        parameters = QueryParameter.single("@Name", "Ada")
        assert parameters == [QueryParameter("@Name", "Ada")]

    def test_helpers_set_binding_kind(self):
        assert binary_parameter("data", b"x").binding_kind is BindingKind.BINARY
        assert xml_parameter("doc", "<a/>").binding_kind is BindingKind.XML
        assert image_parameter("img", b"x").binding_kind is BindingKind.IMAGE
        assert output_parameter("new_id").is_output is True

    def test_str_shows_name_and_value(self):
        assert str(QueryParameter("@ID", 5)) == "@ID: 5"

    def test_normalize_accepts_mapping_in_order(self):
        parameters = normalize_parameters({"b": 2, "a": 1})
        assert [p.name for p in parameters] == ["b", "a"]

    def test_normalize_rejects_foreign_items(self):
        with pytest.raises(TypeError):
            normalize_parameters([("id", 1)])


class TestExpansion:

    def test_sequence_expands_to_one_placeholder_per_element(self):
        statement = prepare_statement("SELECT * FROM orders WHERE id IN (:ids)", {"ids": [4, 7, 9]})

        assert statement.sql == "SELECT * FROM orders WHERE id IN (:ids__0, :ids__1, :ids__2)"
        assert statement.bound_values == {"ids__0": 4, "ids__1": 7, "ids__2": 9}

    def test_expansion_keeps_element_order_for_tuples_and_generators(self):
        statement = prepare_statement("SELECT :v", {"v": (x * 10 for x in range(3))})

        assert [bind.value for bind in statement.binds] == [0, 10, 20]

    def test_expansion_replaces_every_occurrence(self):
        statement = prepare_statement("SELECT :ids UNION SELECT :ids", {"ids": [1, 2]})
        assert statement.sql == "SELECT :ids__0, :ids__1 UNION SELECT :ids__0, :ids__1"
        assert len(statement.binds) == 2

    @pytest.mark.parametrize("order", [("id", "ids"), ("ids", "id")])
    def test_expansion_matches_whole_placeholders_only(self, order):
        values = {"id": 1, "ids": [2, 3]}
        parameters = [QueryParameter(name, values[name]) for name in order]

        statement = prepare_statement("SELECT * FROM t WHERE id = :id OR id IN (:ids)", parameters)

        assert statement.sql == "SELECT * FROM t WHERE id = :id OR id IN (:ids__0, :ids__1)"
        assert statement.bound_values == {"id": 1, "ids__0": 2, "ids__1": 3}

    def test_empty_sequence_expands_to_nothing(self):
        statement = prepare_statement("SELECT * FROM t WHERE id IN (:ids)", {"ids": []})
        assert statement.sql == "SELECT * FROM t WHERE id IN ()"
        assert statement.binds == []

    @pytest.mark.parametrize("value", ["abc", b"abc", bytearray(b"abc"), {"k": "v"}])
    def test_strings_bytes_and_mappings_are_scalars(self, value):
        assert is_expandable(value) is False

    @pytest.mark.parametrize("value", [[1], (1,), {1}, range(1)])
    def test_collections_are_expandable(self, value):
        assert is_expandable(value) is True


class TestScalarBinding:

    def test_prefixed_name_binds_plain_placeholder(self):
        statement = prepare_statement("SELECT * FROM t WHERE id = :ID", [QueryParameter("@ID", 5)])
        assert statement.bound_values == {"ID": 5}

    def test_none_binds_null(self):
        statement = prepare_statement("UPDATE t SET note = :note", {"note": None})
        assert statement.bound_values == {"note": None}

    def test_parameter_absent_from_text_is_skipped(self):
        statement = prepare_statement("SELECT 1", {"unused": 3})
        assert statement.binds == []
        # the clause still builds
        assert str(statement.clause) == "SELECT 1"

    def test_special_kind_binds_sequence_as_one_value(self):
        statement = prepare_statement("INSERT INTO d (payload) VALUES (:payload)", [binary_parameter("payload", b"\x00\x01")])

        (bind,) = statement.binds
        assert statement.sql == "INSERT INTO d (payload) VALUES (:payload)"
        assert bind.value == b"\x00\x01"
        assert isinstance(bind.type, LargeBinary)

    def test_xml_binds_as_unicode_text(self):
        statement = prepare_statement("SELECT :doc", [xml_parameter("doc", "<a/>")])
        assert isinstance(statement.binds[0].type, UnicodeText)

    def test_output_parameter_is_recorded_without_dialect(self):
        statement = prepare_statement(
            "EXEC create_order @new_id=:new_id OUTPUT",
            [output_parameter("@new_id")],
        )

        (bind,) = statement.binds
        assert bind.isoutparam is False
        assert statement.output_names == {"new_id": "@new_id"}
        assert statement.outputs_in_row is False

    def test_output_parameter_flagged_where_driver_returns_it(self):
        statement = prepare_statement(
            "BEGIN create_order(:new_id); END;", [output_parameter("new_id")], oracle.dialect()
        )

        assert statement.uses_out_parameters is True
        assert statement.sql == "BEGIN create_order(:new_id); END;"

    def test_sqlite_leaves_outputs_unflagged(self):
        statement = prepare_statement(
            "UPDATE t SET x = 1 WHERE id = :new_id", [output_parameter("new_id", 1)], sqlite.dialect()
        )

        assert statement.uses_out_parameters is False
        assert statement.output_names == {"new_id": "new_id"}

    def test_mssql_outputs_read_back_through_variables(self):
        parameters = [QueryParameter("@customer", 3), output_parameter("@new_id", 0)]
        sql = procedure_call("dbo.create_order", parameters, "mssql")

        statement = prepare_statement(sql, parameters, mssql.dialect())

        assert statement.sql == (
            "DECLARE @new_id BIGINT = :new_id;\n"
            "SET NOCOUNT ON;\n"
            "EXEC dbo.create_order @customer=:customer, @new_id=@new_id OUTPUT;\n"
            "SELECT @@ROWCOUNT AS __rows_affected, @new_id AS new_id"
        )
        assert statement.bound_values == {"customer": 3, "new_id": 0}
        assert statement.outputs_in_row is True
        assert statement.uses_out_parameters is False

    def test_mssql_untyped_output_declared_as_nvarchar(self):
        statement = prepare_statement("SET :label = 'x'", [output_parameter("label")], mssql.dialect())
        assert statement.sql.startswith("DECLARE @label NVARCHAR(max) = :label;\n")

    def test_output_parameter_is_never_expanded(self):
        statement = prepare_statement("SELECT :codes", [output_parameter("codes", ("a", "b"))])
        assert statement.sql == "SELECT :codes"

    def test_expand_false_binds_sequence_as_one_value(self):
        statement = prepare_statement("INSERT INTO d (tags) VALUES (:tags)", [QueryParameter("tags", ["a", "b"], expand=False)])

        (bind,) = statement.binds
        assert statement.sql == "INSERT INTO d (tags) VALUES (:tags)"
        assert bind.value == ["a", "b"]


class TestProcedureCall:

    def test_mssql_uses_exec_with_named_arguments(self):
        parameters = [QueryParameter("@customer", 3), output_parameter("@new_id")]
        assert (
            procedure_call("dbo.create_order", parameters, "mssql")
            == "EXEC dbo.create_order @customer=:customer, @new_id=:new_id OUTPUT"
        )

    def test_mssql_without_arguments(self):
        assert procedure_call("dbo.refresh", [], "mssql") == "EXEC dbo.refresh"

    def test_other_backends_use_call(self):
        parameters = [QueryParameter("customer", 3), QueryParameter("qty", 2)]
        assert procedure_call("create_order", parameters, "postgresql") == "CALL create_order(:customer, :qty)"
