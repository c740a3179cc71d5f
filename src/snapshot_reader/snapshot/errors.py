"""Error taxonomy for split snapshot reads.

Every failure a split read task can run into is expressed as one of these
classes before it leaves the task. The scheduler owning the task decides on
retries; ``retryable`` tells it whether starting the split over can help.
"""

from typing import Any, Optional


class SnapshotError(Exception):
    """Base class for all split snapshot errors."""

    retryable = True

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class SourceUnavailable(SnapshotError):
    """The current change log position could not be determined."""


class QueryConstructionError(SnapshotError):
    """Split bounds or key type cannot be turned into a range query."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ScanFailed(SnapshotError):
    """I/O or protocol failure while enumerating split rows."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message, cause)


class SnapshottingFailed(SnapshotError):
    """Snapshot of a table split aborted before the scan finished."""

    def __init__(self, table_id: Any, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Snapshotting of table {table_id} failed", cause)
        self.table_id = table_id
        if isinstance(cause, SnapshotError):
            self.retryable = cause.retryable

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause is not None:
            return f"{message}: {self.cause}"
        return message


class WatermarkAcquisitionFailed(SnapshotError):
    """The LOW or HIGH watermark of a split could not be acquired."""

    def __init__(
        self, kind: Any, split_id: str, cause: Optional[BaseException] = None, reason: str = ""
    ) -> None:
        message = f"Failed to determine {kind} watermark for split '{split_id}'"
        if reason:
            message = f"{message}: {reason}"
        elif cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, cause)
        self.kind = kind
        self.split_id = split_id


class SnapshotInterrupted(SnapshotError):
    """Cooperative cancellation was observed; the split is not completed."""

    def __init__(self, split_id: str, rows_emitted: int) -> None:
        super().__init__(
            f"Snapshot of split '{split_id}' was interrupted after {rows_emitted} rows"
        )
        self.split_id = split_id
        self.rows_emitted = rows_emitted
