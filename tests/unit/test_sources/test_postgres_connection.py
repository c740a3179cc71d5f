"""Unit tests for Postgres connection manager."""

from unittest.mock import MagicMock, patch

import psycopg2
import pytest


@pytest.mark.unit
class TestPostgresConnectionManager:
    """Test suite for Postgres connection manager."""

    @patch("psycopg2.connect")
    def test_connection_creation(self, mock_connect, postgres_credentials):
        """Test connection is created with correct parameters."""
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        mock_conn = MagicMock()
        mock_conn.closed = 0
        mock_connect.return_value = mock_conn

        manager = PostgresConnectionManager(**postgres_credentials)
        conn = manager.get_connection()

        assert conn is mock_conn
        assert manager.is_connected()
        assert mock_connect.call_args.kwargs["host"] == postgres_credentials["host"]
        assert mock_connect.call_args.kwargs["database"] == postgres_credentials["database"]

    @patch("psycopg2.connect")
    def test_connection_is_reused(self, mock_connect, postgres_credentials):
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        mock_conn = MagicMock()
        mock_conn.closed = 0
        mock_connect.return_value = mock_conn

        manager = PostgresConnectionManager(**postgres_credentials)
        manager.get_connection()
        manager.get_connection()

        mock_connect.assert_called_once()

    @patch("time.sleep")
    @patch("psycopg2.connect")
    def test_connection_retry_on_failure(self, mock_connect, mock_sleep, postgres_credentials):
        """Test connection retry logic on failure."""
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        mock_conn = MagicMock()
        mock_conn.closed = 0
        mock_connect.side_effect = [psycopg2.OperationalError("Connection failed"), mock_conn]

        manager = PostgresConnectionManager(**postgres_credentials, max_retries=3, retry_delay=0.5)

        assert manager.get_connection() is mock_conn
        assert mock_connect.call_count == 2
        mock_sleep.assert_called_once_with(0.5)

    @patch("time.sleep")
    @patch("psycopg2.connect")
    def test_connection_failure_after_max_retries(
        self, mock_connect, mock_sleep, postgres_credentials
    ):
        """Test connection fails after max retries."""
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        mock_connect.side_effect = psycopg2.OperationalError("Connection failed")

        manager = PostgresConnectionManager(**postgres_credentials, max_retries=2)

        with pytest.raises(psycopg2.OperationalError):
            manager.get_connection()
        assert mock_connect.call_count == 2

    @patch("psycopg2.connect")
    def test_execute_query_commits(self, mock_connect, postgres_credentials):
        """Test read queries run in their own transaction."""
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        mock_conn = MagicMock()
        mock_conn.closed = 0
        cursor = mock_conn.cursor.return_value.__enter__.return_value
        cursor.description = [("lsn",)]
        cursor.fetchall.return_value = [{"lsn": "0/1"}]
        mock_connect.return_value = mock_conn

        manager = PostgresConnectionManager(**postgres_credentials)
        rows = manager.execute_query("SELECT 1", ("x",))

        assert rows == [{"lsn": "0/1"}]
        cursor.execute.assert_called_once_with("SELECT 1", ("x",))
        mock_conn.commit.assert_called_once()

    @patch("psycopg2.connect")
    def test_execute_query_rolls_back_on_error(self, mock_connect, postgres_credentials):
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        mock_conn = MagicMock()
        mock_conn.closed = 0
        cursor = mock_conn.cursor.return_value.__enter__.return_value
        cursor.execute.side_effect = psycopg2.ProgrammingError("syntax error")
        mock_connect.return_value = mock_conn

        manager = PostgresConnectionManager(**postgres_credentials)

        with pytest.raises(psycopg2.ProgrammingError):
            manager.execute_query("SELEC 1")
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()

    def test_from_settings(self, monkeypatch):
        """Test manager is configured from POSTGRES_* and SNAPSHOT_* variables."""
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        monkeypatch.setenv("POSTGRES_HOST", "db.internal")
        monkeypatch.setenv("POSTGRES_PORT", "6543")
        monkeypatch.setenv("SNAPSHOT_CONNECT_MAX_RETRIES", "5")

        manager = PostgresConnectionManager.from_settings()

        assert manager.host == "db.internal"
        assert manager.port == 6543
        assert manager.max_retries == 5

    @patch("psycopg2.connect")
    def test_context_manager_closes(self, mock_connect, postgres_credentials):
        from snapshot_reader.sources.postgres.connection import PostgresConnectionManager

        mock_conn = MagicMock()
        mock_conn.closed = 0
        mock_connect.return_value = mock_conn

        with PostgresConnectionManager(**postgres_credentials):
            pass

        mock_conn.close.assert_called_once()
