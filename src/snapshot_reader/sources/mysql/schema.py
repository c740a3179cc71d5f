"""MySQL table schema lookup."""

from mysql.connector import Error as MySQLError

from snapshot_reader.snapshot.capabilities import SchemaProvider
from snapshot_reader.snapshot.errors import QueryConstructionError, SourceUnavailable
from snapshot_reader.snapshot.models import Column, TableId, TableSchema
from snapshot_reader.sources.mysql.connection import MySQLConnectionManager

COLUMNS_QUERY = """
    SELECT COLUMN_NAME as column_name, DATA_TYPE as data_type
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""


class MySQLSchemaProvider(SchemaProvider):
    """Reads column order from INFORMATION_SCHEMA; the schema is the database."""

    def __init__(self, connection_manager: MySQLConnectionManager) -> None:
        self.connection_manager = connection_manager

    def table_for(self, table_id: TableId) -> TableSchema:
        database = table_id.schema or self.connection_manager.database
        try:
            rows = self.connection_manager.execute_query(
                COLUMNS_QUERY, (database, table_id.table)
            )
        except (MySQLError, OSError) as e:
            raise SourceUnavailable(f"Failed to read schema of {table_id}: {e}", e) from e

        if not rows:
            raise QueryConstructionError(f"Table {table_id} not found")

        columns = tuple(
            Column(name=row["column_name"], position=i + 1, type_name=row["data_type"])
            for i, row in enumerate(rows)
        )
        return TableSchema(table_id=table_id.without_catalog(), columns=columns)
