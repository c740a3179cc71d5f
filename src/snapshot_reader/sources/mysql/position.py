"""MySQL binlog positions."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from mysql.connector import Error as MySQLError

from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.snapshot.capabilities import PositionSource
from snapshot_reader.snapshot.errors import SourceUnavailable
from snapshot_reader.snapshot.models import Position
from snapshot_reader.sources.mysql.connection import MySQLConnectionManager

logger = get_logger(__name__)

_SEQUENCE_SUFFIX = re.compile(r"\.(\d+)$")

# SHOW MASTER STATUS was removed in MySQL 8.4
STATUS_QUERIES = ("SHOW MASTER STATUS", "SHOW BINARY LOG STATUS")


@dataclass(frozen=True, order=True)
class BinlogPosition(Position):
    """A binlog coordinate, ordered by file sequence number then byte offset."""

    sequence: int
    position: int
    file: str = field(compare=False)

    @classmethod
    def of(cls, file: str, position: int) -> "BinlogPosition":
        """
        Build a position from a binlog file name and offset.

        Raises:
            ValueError: If the file name has no numeric sequence suffix
        """
        match = _SEQUENCE_SUFFIX.search(file or "")
        if not match:
            raise ValueError(f"Invalid binlog file name: {file!r}")
        return cls(sequence=int(match.group(1)), position=int(position), file=file)

    def __str__(self) -> str:
        return f"{self.file}:{self.position}"

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "pos": self.position}


class MySQLPositionSource(PositionSource):
    """Reads the current binlog coordinate of a MySQL server."""

    def __init__(self, connection_manager: MySQLConnectionManager) -> None:
        self.connection_manager = connection_manager

    def _status_rows(self) -> List[Dict[str, Any]]:
        last_error: MySQLError = MySQLError("no binlog status query succeeded")
        for query in STATUS_QUERIES:
            try:
                return self.connection_manager.execute_query(query)
            except MySQLError as e:
                # unknown statement on this server version, try the next form
                last_error = e
                logger.debug(f"{query} failed: {e}")
        raise last_error

    def current_position(self) -> BinlogPosition:
        try:
            rows = self._status_rows()
        except (MySQLError, OSError) as e:
            raise SourceUnavailable(f"Failed to query binlog position: {e}", e) from e

        if not rows:
            raise SourceUnavailable("Binary logging is disabled on the server")

        try:
            position = BinlogPosition.of(rows[0].get("File"), rows[0].get("Position"))
        except (TypeError, ValueError) as e:
            raise SourceUnavailable(f"Unreadable binlog status {rows[0]}: {e}", e) from e

        logger.debug(f"Current binlog position: {position}")
        return position
