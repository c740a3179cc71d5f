"""Postgres WAL positions."""

from dataclasses import dataclass
from typing import Any, Dict

import psycopg2

from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.snapshot.capabilities import PositionSource
from snapshot_reader.snapshot.errors import SourceUnavailable
from snapshot_reader.snapshot.models import Position
from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

logger = get_logger(__name__)

# On a standby pg_current_wal_lsn() is not available
CURRENT_LSN_QUERY = """
    SELECT (CASE WHEN pg_is_in_recovery()
                 THEN pg_last_wal_replay_lsn()
                 ELSE pg_current_wal_lsn() END)::text AS lsn
"""


@dataclass(frozen=True, order=True)
class LsnPosition(Position):
    """A WAL log sequence number, ordered as a 64-bit integer."""

    value: int

    @classmethod
    def parse(cls, text: str) -> "LsnPosition":
        """
        Parse the textual ``XXXXXXXX/YYYYYYYY`` LSN form.

        Raises:
            ValueError: If the text is not a valid LSN
        """
        try:
            high, low = text.strip().split("/")
            value = (int(high, 16) << 32) | int(low, 16)
        except (AttributeError, ValueError):
            raise ValueError(f"Invalid LSN: {text!r}") from None
        if value < 0 or int(low, 16) > 0xFFFFFFFF:
            raise ValueError(f"Invalid LSN: {text!r}")
        return cls(value=value)

    def __str__(self) -> str:
        return f"{self.value >> 32:X}/{self.value & 0xFFFFFFFF:X}"

    def to_dict(self) -> Dict[str, Any]:
        return {"lsn": str(self), "lsn_value": self.value}


class PostgresPositionSource(PositionSource):
    """Reads the current WAL position of a Postgres server."""

    def __init__(self, connection_manager: PostgresConnectionManager) -> None:
        self.connection_manager = connection_manager

    def current_position(self) -> LsnPosition:
        try:
            rows = self.connection_manager.execute_query(CURRENT_LSN_QUERY)
        except (psycopg2.Error, OSError) as e:
            raise SourceUnavailable(f"Failed to query current LSN: {e}", e) from e

        if not rows or rows[0].get("lsn") is None:
            raise SourceUnavailable("Server returned no current LSN")

        try:
            position = LsnPosition.parse(rows[0]["lsn"])
        except ValueError as e:
            raise SourceUnavailable(str(e), e) from e

        logger.debug(f"Current LSN: {position}")
        return position
