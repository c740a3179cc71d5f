"""
Pytest configuration and shared fixtures for snapshot reader tests.
"""

import os
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from snapshot_reader.common.config import get_settings
from snapshot_reader.observability.metrics import MetricsExporter
from snapshot_reader.sinks.channel import ChannelEventSink
from snapshot_reader.snapshot.models import SplitDescriptor, SplitKeyType, TableId

# Load environment variables
load_dotenv()


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings for every test so monkeypatched env vars apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def postgres_credentials():
    """PostgreSQL connection credentials from environment."""
    return {
        "host": os.getenv("POSTGRES_HOST", "localhost"),
        "port": int(os.getenv("POSTGRES_PORT", "5432")),
        "database": os.getenv("POSTGRES_DB", "cdcdb"),
        "user": os.getenv("POSTGRES_USER", "cdcuser"),
        "password": os.getenv("POSTGRES_PASSWORD", "cdcpass"),
    }


@pytest.fixture(scope="session")
def mysql_credentials():
    """MySQL connection credentials from environment."""
    return {
        "host": os.getenv("MYSQL_HOST", "localhost"),
        "port": int(os.getenv("MYSQL_PORT", "3306")),
        "database": os.getenv("MYSQL_DB", "cdcdb"),
        "user": os.getenv("MYSQL_USER", "cdcuser"),
        "password": os.getenv("MYSQL_PASSWORD", "cdcpass"),
    }


@pytest.fixture
def table_id():
    return TableId(schema="public", table="customers")


@pytest.fixture
def split(table_id):
    """Split S1 covering [null, 100) of an integer key."""
    return SplitDescriptor(
        split_id="S1",
        table_id=table_id,
        split_key="k",
        split_key_type=SplitKeyType.INTEGER,
        split_start=None,
        split_end=100,
        end_inclusive=False,
    )


@pytest.fixture
def channel_sink():
    """Unbounded in-process event channel."""
    return ChannelEventSink(maxsize=0)


@pytest.fixture
def metrics():
    """Metrics exporter double."""
    return MagicMock(spec=MetricsExporter)
