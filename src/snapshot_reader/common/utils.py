"""Common utility functions."""

import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID


def format_duration(millis: float) -> str:
    """
    Format a duration in milliseconds as HH:MM:SS.mmm.

    Args:
        millis: Duration in milliseconds

    Returns:
        Human-readable duration string
    """
    total_ms = int(max(0, millis))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds, ms = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{ms:03d}"


def json_default(value: Any) -> Any:
    """Serialize values json.dumps does not handle natively."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


def to_json(data: Any) -> str:
    """Dump data to a compact JSON string, tolerating database value types."""
    return json.dumps(data, default=json_default, separators=(",", ":"))
