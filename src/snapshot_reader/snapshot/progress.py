"""Time-bounded progress reporting during a split scan."""

import time
from typing import Callable, Optional

from snapshot_reader.common.utils import format_duration
from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.snapshot.capabilities import ProgressListener
from snapshot_reader.snapshot.models import TableId

logger = get_logger(__name__)

DEFAULT_PROGRESS_INTERVAL_SECONDS = 10.0


class IntervalTimer:
    """Expires once a fixed interval of a monotonic clock has passed."""

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.interval = interval
        self.clock = clock
        self.reset()

    def reset(self) -> None:
        self._deadline = self.clock() + self.interval

    def expired(self) -> bool:
        return self.clock() >= self._deadline


class ProgressReporter:
    """
    Reports rows scanned at most once per interval while a scan runs.

    Reporting is observational: listener errors are logged and dropped, and
    nothing is reported once the reporter is stopped.
    """

    def __init__(
        self,
        split_id: str,
        table_id: TableId,
        listener: Optional[ProgressListener] = None,
        interval_seconds: float = DEFAULT_PROGRESS_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize progress reporter.

        Args:
            split_id: Split being scanned
            table_id: Table being scanned
            listener: Collector receiving rows_scanned callbacks
            interval_seconds: Minimum time between two reports
            clock: Monotonic clock in seconds
        """
        self.split_id = split_id
        self.table_id = table_id
        self.listener = listener
        self.clock = clock
        self.reports = 0
        self._started_at = clock()
        self._timer = IntervalTimer(interval_seconds, clock)
        self._stopped = False

    def elapsed_millis(self) -> float:
        return (self.clock() - self._started_at) * 1000.0

    def on_row(self, rows_scanned: int) -> bool:
        """
        Report progress if the interval has elapsed.

        Args:
            rows_scanned: Rows scanned so far

        Returns:
            True if a report was made
        """
        if self._stopped or not self._timer.expired():
            return False

        logger.info(
            f"Exported {rows_scanned} records for split '{self.split_id}' "
            f"after {format_duration(self.elapsed_millis())}",
            extra={"split_id": self.split_id, "table": str(self.table_id)},
        )
        if self.listener is not None:
            try:
                self.listener.rows_scanned(self.table_id, rows_scanned)
            except Exception as e:
                logger.warning(f"Progress listener failed for split '{self.split_id}': {e}")
        self.reports += 1
        self._timer.reset()
        return True

    def stop(self) -> None:
        """Stop reporting; called when the scan finishes or fails."""
        self._stopped = True
