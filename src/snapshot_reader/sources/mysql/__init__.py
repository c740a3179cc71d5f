"""MySQL capabilities for split snapshot reads."""

from snapshot_reader.sources.mysql.connection import MySQLConnectionManager
from snapshot_reader.sources.mysql.cursor import MySQLRowCursor, MySQLRowCursorFactory
from snapshot_reader.sources.mysql.position import BinlogPosition, MySQLPositionSource
from snapshot_reader.sources.mysql.schema import MySQLSchemaProvider

__all__ = [
    "BinlogPosition",
    "MySQLConnectionManager",
    "MySQLPositionSource",
    "MySQLRowCursor",
    "MySQLRowCursorFactory",
    "MySQLSchemaProvider",
]
