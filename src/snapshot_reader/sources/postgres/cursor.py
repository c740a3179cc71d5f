"""Postgres split row cursors."""

from typing import Any
from uuid import uuid4

import psycopg2
import psycopg2.extensions

from snapshot_reader.snapshot.cursor import SplitRowCursor, SplitRowCursorFactory
from snapshot_reader.snapshot.query import PostgresDialect


class PostgresRowCursor(SplitRowCursor):
    """Scans a split through a server-side (named) cursor."""

    driver_errors = (psycopg2.Error, OSError)

    def _open_cursor(self, connection: Any) -> Any:
        cursor = connection.cursor(
            name=f"snapshot_{uuid4().hex}",
            cursor_factory=psycopg2.extensions.cursor,
        )
        cursor.itersize = self.fetch_size
        return cursor

    def _end_read(self, connection: Any) -> None:
        if not connection.closed:
            connection.rollback()


class PostgresRowCursorFactory(SplitRowCursorFactory):
    dialect = PostgresDialect()
    cursor_class = PostgresRowCursor
