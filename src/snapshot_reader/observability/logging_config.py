"""JSON log records for split snapshot reads."""

import json
import logging
import sys
from typing import Any, Dict, Optional

from snapshot_reader.common.config import get_settings

# Split attributes passed through ``extra=`` and lifted into the record
CONTEXT_FIELDS = ("split_id", "table", "watermark_kind", "position")

# Client libraries whose INFO chatter would drown out split progress
QUIET_LOGGERS = ("kafka", "urllib3", "mysql.connector")


class JSONFormatter(logging.Formatter):
    """Renders one log record per line, tagged with the split it concerns."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (name, str(getattr(record, name)))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Send snapshot reader logs to stderr as JSON lines.

    stdout stays free for the events printed by ``read-split --format json``.

    Args:
        log_level: Level name such as DEBUG or WARNING (default: LOG_LEVEL setting)
    """
    level_name = log_level or get_settings().app.log_level
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for a snapshot reader module."""
    return logging.getLogger(name)
