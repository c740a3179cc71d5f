"""Postgres table schema lookup."""

import psycopg2

from snapshot_reader.snapshot.capabilities import SchemaProvider
from snapshot_reader.snapshot.errors import QueryConstructionError, SourceUnavailable
from snapshot_reader.snapshot.models import Column, TableId, TableSchema
from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

COLUMNS_QUERY = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = %s AND table_name = %s
    ORDER BY ordinal_position
"""


class PostgresSchemaProvider(SchemaProvider):
    """Reads column order from information_schema."""

    def __init__(self, connection_manager: PostgresConnectionManager) -> None:
        self.connection_manager = connection_manager

    def table_for(self, table_id: TableId) -> TableSchema:
        schema = table_id.schema or "public"
        try:
            rows = self.connection_manager.execute_query(COLUMNS_QUERY, (schema, table_id.table))
        except (psycopg2.Error, OSError) as e:
            raise SourceUnavailable(f"Failed to read schema of {table_id}: {e}", e) from e

        if not rows:
            raise QueryConstructionError(f"Table {table_id} not found")

        # ordinal_position keeps gaps left by dropped columns
        columns = tuple(
            Column(name=row["column_name"], position=i + 1, type_name=row["data_type"])
            for i, row in enumerate(rows)
        )
        return TableSchema(table_id=table_id.without_catalog(), columns=columns)
