"""Postgres connection manager for snapshot reads."""

import time
from typing import Any, Dict, List, Optional, Tuple

import psycopg2
from psycopg2.extras import RealDictCursor

from snapshot_reader.common.config import get_settings
from snapshot_reader.observability.logging_config import get_logger

logger = get_logger(__name__)


class PostgresConnectionManager:
    """Manages the PostgreSQL connection a split read task queries through."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        """
        Connection settings of the source a split is read from.

        Args:
            host: Database host
            port: Database port
            user: Database user
            password: Database password
            database: Database name
            max_retries: Connect attempts before the source counts as unavailable
            retry_delay: Seconds between connect attempts
        """
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._connection: Optional[psycopg2.extensions.connection] = None

    @classmethod
    def from_settings(cls) -> "PostgresConnectionManager":
        """Build a manager from POSTGRES_* and SNAPSHOT_* settings."""
        settings = get_settings()
        return cls(
            host=settings.postgres.host,
            port=settings.postgres.port,
            user=settings.postgres.user,
            password=settings.postgres.password,
            database=settings.postgres.db,
            max_retries=settings.snapshot.connect_max_retries,
            retry_delay=settings.snapshot.connect_retry_delay,
        )

    def get_connection(self) -> psycopg2.extensions.connection:
        """
        Return the open connection, connecting first when needed.

        Watermark queries and the split scan of one task share this connection.

        Raises:
            psycopg2.Error: If no attempt succeeds
        """
        if self._connection and not self._connection.closed:
            return self._connection

        last_exception: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Connecting to Postgres at {self.host}:{self.port}/{self.database} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                self._connection = psycopg2.connect(
                    host=self.host,
                    port=self.port,
                    user=self.user,
                    password=self.password,
                    database=self.database,
                    cursor_factory=RealDictCursor,
                )
                logger.info("Connected to Postgres source")
                return self._connection
            except psycopg2.Error as e:
                last_exception = e
                logger.warning(f"Source connect attempt {attempt + 1} failed: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay)

        logger.error(f"Source unreachable after {self.max_retries} connect attempts")
        raise last_exception  # type: ignore

    def is_connected(self) -> bool:
        """Whether a connection is open."""
        return self._connection is not None and not self._connection.closed

    def close(self) -> None:
        """Release the connection once the task is done with it."""
        if self._connection and not self._connection.closed:
            self._connection.close()
            logger.info("Closed Postgres connection")

    def execute_query(
        self, query: str, params: Optional[Tuple] = None
    ) -> List[Dict[str, Any]]:
        """
        Run a read query in its own short transaction.

        Args:
            query: SQL query to execute
            params: Query parameters

        Returns:
            Result rows as dictionaries
        """
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall() if cursor.description else []
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
        return [dict(row) for row in rows]

    def __enter__(self) -> "PostgresConnectionManager":
        self.get_connection()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
