"""Postgres capabilities for split snapshot reads."""

from snapshot_reader.sources.postgres.connection import PostgresConnectionManager
from snapshot_reader.sources.postgres.cursor import PostgresRowCursor, PostgresRowCursorFactory
from snapshot_reader.sources.postgres.position import LsnPosition, PostgresPositionSource
from snapshot_reader.sources.postgres.schema import PostgresSchemaProvider

__all__ = [
    "LsnPosition",
    "PostgresConnectionManager",
    "PostgresPositionSource",
    "PostgresRowCursor",
    "PostgresRowCursorFactory",
    "PostgresSchemaProvider",
]
