"""
CRUD statement templates for entity repositories.

Every template is assembled from a column list and a placeholder list, with identifiers
quoted by the dialect's identifier preparer. Bind names are the entity attribute names,
so the values produced by `entity_parameters` bind directly.
"""
from __future__ import annotations

from sqlalchemy.engine import Dialect

from dataconnector.mapping.entity import EntityDescriptor


class StatementBuilder:
    def __init__(self, dialect: Dialect):
        self.dialect = dialect
        self._preparer = dialect.identifier_preparer

    def quote(self, identifier: str) -> str:
        return self._preparer.quote(identifier)

    def _column_list(self, descriptor: EntityDescriptor) -> str:
        return ", ".join(self.quote(column.column) for column in descriptor.columns)

    # =================================================================================================================
    # Templates
    # =================================================================================================================

    def select(self, descriptor: EntityDescriptor, table_name: str) -> str:
        return f"SELECT {self._column_list(descriptor)} FROM {self.quote(table_name)}"

    def select_by_id(self, descriptor: EntityDescriptor, table_name: str, id_column: str) -> str:
        return f"{self.select(descriptor, table_name)} WHERE {self.quote(id_column)}=:{id_column}"

    def insert(self, descriptor: EntityDescriptor, table_name: str) -> str:
        return self._insert(descriptor, table_name, output=None)

    def insert_returning(self, descriptor: EntityDescriptor, table_name: str, identity_column: str) -> str:
        """
        Insert that reads one generated column back.

        SQL Server: `INSERT ... OUTPUT INSERTED.<col> VALUES (...)`.
        Other backends: `INSERT ... VALUES (...) RETURNING <col>`.
        """
        return self._insert(descriptor, table_name, output=identity_column)

    def delete(self, table_name: str, id_column: str) -> str:
        return f"DELETE FROM {self.quote(table_name)} WHERE {self.quote(id_column)}=:{id_column}"

    def _insert(self, descriptor: EntityDescriptor, table_name: str, output: str | None) -> str:
        columns = descriptor.insert_columns
        parts = [f"INSERT INTO {self.quote(table_name)}"]

        if columns:
            parts.append(f"({', '.join(self.quote(c.column) for c in columns)})")

        output_clause = None
        if output is not None:
            if self.dialect.name == "mssql":
                output_clause = f"OUTPUT INSERTED.{self.quote(output)}"
                parts.append(output_clause)
                output_clause = None
            else:
                output_clause = f"RETURNING {self.quote(output)}"

        if columns:
            parts.append(f"VALUES ({', '.join(f':{c.attribute}' for c in columns)})")
        else:
            parts.append("DEFAULT VALUES")

        if output_clause:
            parts.append(output_clause)

        return " ".join(parts)


__all__ = ["StatementBuilder"]
