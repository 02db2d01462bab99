"""
Catalog introspection.

Reads table, column and foreign-key metadata from a live PostgreSQL session.
Every query failure is raised as :class:`IntrospectionError`, which aborts the
dump.
"""

import logging
from typing import Any

import psycopg2
from opentelemetry import trace

from utils.sql_safety import quote_qualified
from utils.tracing import trace_operation

from .errors import IntrospectionError
from .functions import FUNCTION_SCHEMA
from .tables import TableRef

logger = logging.getLogger(__name__)


LIST_TABLES_SQL = """
SELECT table_schema, table_name
FROM information_schema.tables
WHERE table_type = 'BASE TABLE'
ORDER BY table_schema, table_name
"""

LIST_COLUMNS_SQL = """
SELECT column_name
FROM information_schema.columns
WHERE table_schema = %s AND table_name = %s AND is_generated = 'NEVER'
ORDER BY ordinal_position
"""

# One row per FK constraint; composite keys still produce a single edge
LIST_FOREIGN_KEYS_SQL = """
SELECT child_ns.nspname, child.relname, parent_ns.nspname, parent.relname
FROM pg_constraint con
JOIN pg_class child ON child.oid = con.conrelid
JOIN pg_namespace child_ns ON child_ns.oid = child.relnamespace
JOIN pg_class parent ON parent.oid = con.confrelid
JOIN pg_namespace parent_ns ON parent_ns.oid = parent.relnamespace
WHERE con.contype = 'f'
ORDER BY con.conname
"""

FUNCTIONS_INSTALLED_SQL = """
SELECT 1
FROM pg_proc p
JOIN pg_namespace n ON p.pronamespace = n.oid
WHERE n.nspname = %s AND p.proname = 'anon_fake_email'
"""


class SchemaIntrospector:
    """Catalog queries over one shared psycopg2 connection."""

    def __init__(self, connection: Any):
        self.connection = connection

    def _query(self, operation: str, sql: str, params: tuple = (), table: str | None = None) -> list:
        with trace_operation(
            f"catalog.{operation}",
            kind=trace.SpanKind.CLIENT,
            **({"db.table": table} if table else {}),
        ):
            try:
                with self.connection.cursor() as cursor:
                    cursor.execute(sql, params)
                    return cursor.fetchall()
            except psycopg2.Error as e:
                raise IntrospectionError(f"{operation} failed: {e}", table=table) from e

    def list_tables(self) -> list[TableRef]:
        """All base tables, ordered by schema and name."""
        rows = self._query("list_tables", LIST_TABLES_SQL)
        return [TableRef(schema, name) for schema, name in rows]

    def list_columns(self, table: TableRef) -> list[str]:
        """Column names of a table in ordinal order, without generated columns."""
        rows = self._query(
            "list_columns", LIST_COLUMNS_SQL, (table.schema, table.name), table=table.qualified
        )
        return [row[0] for row in rows]

    def list_foreign_keys(self) -> list[tuple[TableRef, TableRef]]:
        """(child, parent) pairs, one per FK constraint."""
        rows = self._query("list_foreign_keys", LIST_FOREIGN_KEYS_SQL)
        return [
            (TableRef(child_schema, child_name), TableRef(parent_schema, parent_name))
            for child_schema, child_name, parent_schema, parent_name in rows
        ]

    def row_count(self, table: TableRef) -> int:
        rows = self._query(
            "row_count",
            f"SELECT COUNT(*) FROM ONLY {quote_qualified(table.schema, table.name)}",
            table=table.qualified,
        )
        return int(rows[0][0])

    def functions_installed(self) -> bool:
        """Check whether the transform functions have been set up."""
        return bool(self._query("functions_installed", FUNCTIONS_INSTALLED_SQL, (FUNCTION_SCHEMA,)))
