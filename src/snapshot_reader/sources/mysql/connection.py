"""MySQL connection manager for snapshot reads."""

import time
from typing import Any, Dict, List, Optional, Tuple

import mysql.connector
from mysql.connector import Error as MySQLError

from snapshot_reader.common.config import get_settings
from snapshot_reader.observability.logging_config import get_logger

logger = get_logger(__name__)


class MySQLConnectionManager:
    """Manages the MySQL connection a split read task queries through."""

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
        self._connection: Optional[Any] = None

    @classmethod
    def from_settings(cls) -> "MySQLConnectionManager":
        """Build a manager from MYSQL_* and SNAPSHOT_* settings."""
        settings = get_settings()
        return cls(
            host=settings.mysql.host,
            port=settings.mysql.port,
            user=settings.mysql.user,
            password=settings.mysql.password,
            database=settings.mysql.db,
            max_retries=settings.snapshot.connect_max_retries,
            retry_delay=settings.snapshot.connect_retry_delay,
        )

    def get_connection(self) -> Any:
        """
        Return the open connection, connecting first when needed.

        Watermark queries and the split scan of one task share this connection.

        Raises:
            mysql.connector.Error: If no attempt succeeds
        """
        if self._connection and self._connection.is_connected():
            return self._connection

        last_exception: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Connecting to MySQL at {self.host}:{self.port}/{self.database} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                self._connection = mysql.connector.connect(
                    host=self.host,
                    port=self.port,
                    user=self.user,
                    password=self.password,
                    database=self.database,
                    autocommit=True,
                    consume_results=True,
                )
                logger.info("Connected to MySQL source")
                return self._connection
            except MySQLError as e:
                last_exception = e
                logger.warning(f"Source connect attempt {attempt + 1} failed: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay)

        logger.error(f"Source unreachable after {self.max_retries} connect attempts")
        raise last_exception  # type: ignore

    def is_connected(self) -> bool:
        """Whether a connection is open."""
        return self._connection is not None and self._connection.is_connected()

    def close(self) -> None:
        """Release the connection once the task is done with it."""
        if self._connection and self._connection.is_connected():
            self._connection.close()
            logger.info("Closed MySQL connection")

    def execute_query(
        self,
        query: str,
        params: Optional[Tuple] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run a position or schema lookup query.

        Args:
            query: SQL query to execute
            params: Query parameters

        Returns:
            Result rows as dictionaries
        """
        conn = self.get_connection()
        cursor = conn.cursor(dictionary=True)
        try:
            cursor.execute(query, params)
            if cursor.description:
                return cursor.fetchall()  # type: ignore
            return []
        finally:
            cursor.close()

    def __enter__(self) -> "MySQLConnectionManager":
        self.get_connection()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
