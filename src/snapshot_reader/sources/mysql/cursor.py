"""MySQL split row cursors."""

from typing import Any

from mysql.connector import Error as MySQLError

from snapshot_reader.snapshot.cursor import SplitRowCursor, SplitRowCursorFactory
from snapshot_reader.snapshot.query import MySQLDialect


class MySQLRowCursor(SplitRowCursor):
    """Scans a split through an unbuffered cursor, fetch_size rows at a time."""

    driver_errors = (MySQLError, OSError)

    def _open_cursor(self, connection: Any) -> Any:
        return connection.cursor(buffered=False)

    def _end_read(self, connection: Any) -> None:
        # an abandoned unbuffered result must be drained before the connection is reused
        if connection.unread_result:
            connection.consume_results()


class MySQLRowCursorFactory(SplitRowCursorFactory):
    dialect = MySQLDialect()
    cursor_class = MySQLRowCursor
