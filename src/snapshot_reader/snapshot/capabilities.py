"""Capabilities a split read task is composed from."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Protocol

from snapshot_reader.snapshot.models import (
    DataChangeEvent,
    Position,
    RowTuple,
    SplitDescriptor,
    TableId,
    TableSchema,
    WatermarkKind,
)


class PositionSource(ABC):
    """Reports the current position in the change log."""

    @abstractmethod
    def current_position(self) -> Position:
        """
        Query the current change log position.

        Raises:
            SourceUnavailable: If the position cannot be determined
        """


class SchemaProvider(ABC):
    """Supplies the ordered column list of a table."""

    @abstractmethod
    def table_for(self, table_id: TableId) -> TableSchema:
        """
        Look up a table schema.

        Raises:
            SourceUnavailable: If the catalog cannot be queried
            QueryConstructionError: If the table is unknown
        """


class RowCursor(ABC):
    """Lazy, finite, single-pass sequence of rows of one split."""

    @abstractmethod
    def __iter__(self) -> Iterator[RowTuple]:
        """
        Enumerate rows in split key order.

        Raises:
            ScanFailed: On any I/O or protocol error, or if iterated twice
        """

    @abstractmethod
    def close(self) -> None:
        """Release the underlying statement; safe to call more than once."""

    @property
    @abstractmethod
    def statement(self) -> str:
        """The select statement the cursor runs."""

    def __enter__(self) -> "RowCursor":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class RowCursorFactory(ABC):
    """Builds row cursors for splits."""

    @abstractmethod
    def create(self, split: SplitDescriptor, fetch_size: int) -> RowCursor:
        """
        Prepare a cursor over the split bounds without running it yet.

        Raises:
            QueryConstructionError: If bounds or key type are inconsistent
        """


class EventSink(ABC):
    """
    Ordered output channel shared with the change stream reader.

    Implementations must be safe to call from many workers at once and keep
    the submission order of each caller.
    """

    @abstractmethod
    def emit_watermark(
        self, partition_key: str, split: SplitDescriptor, position: Position, kind: WatermarkKind
    ) -> None:
        """Emit a LOW or HIGH watermark for a split."""

    @abstractmethod
    def emit_data_change(self, partition_key: str, event: DataChangeEvent) -> None:
        """Emit one snapshot row."""

    @abstractmethod
    def complete_split(self, partition_key: str, split_id: str) -> None:
        """Signal that no further events for the split will arrive."""


class ProgressListener(Protocol):
    """Receives rows-scanned callbacks during a long scan."""

    def rows_scanned(self, table_id: TableId, rows: int) -> None:
        ...


class CancellationContext(Protocol):
    """Cooperative cancellation signal checked between rows."""

    def is_running(self) -> bool:
        ...


@dataclass
class SnapshotCapabilities:
    """The capability set a split read task drives."""

    position_source: PositionSource
    cursor_factory: RowCursorFactory
    event_sink: EventSink
    progress_listener: Optional[ProgressListener] = None
