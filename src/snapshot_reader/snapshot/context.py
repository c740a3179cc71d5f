"""Cancellation context handed to split read tasks by their scheduler."""

import threading
from typing import Optional

from snapshot_reader.snapshot.models import Position


class SplitReadContext:
    """
    Cooperative cancellation flag plus the watermarks of the last attempt.

    The scheduler calls ``cancel()`` from any thread; the task checks
    ``is_running()`` between rows. The task records each watermark here as
    soon as it has been acquired.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self.low_watermark: Optional[Position] = None
        self.high_watermark: Optional[Position] = None

    def cancel(self) -> None:
        self._cancelled.set()

    def is_running(self) -> bool:
        return not self._cancelled.is_set()
