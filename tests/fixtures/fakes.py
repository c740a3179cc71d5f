"""In-memory capabilities for driving SnapshotSplitReadTask without a database."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from snapshot_reader.sinks.channel import ChannelEventSink
from snapshot_reader.snapshot.capabilities import PositionSource, RowCursor, RowCursorFactory
from snapshot_reader.snapshot.errors import ScanFailed, SourceUnavailable
from snapshot_reader.snapshot.models import (
    DataChangeEvent,
    Position,
    RowTuple,
    SplitDescriptor,
    TableId,
)
from snapshot_reader.snapshot.query import SqlDialect, build_split_scan_query


@dataclass(frozen=True, order=True)
class SeqPosition(Position):
    """Plain integer change log position."""

    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.value}

    def __str__(self) -> str:
        return f"P{self.value}"


class ScriptedPositionSource(PositionSource):
    """Returns positions (or raises exceptions) in the order given."""

    def __init__(self, *script: Any) -> None:
        self.script = list(script)
        self.calls = 0

    def current_position(self) -> Position:
        self.calls += 1
        if not self.script:
            raise SourceUnavailable("no more positions scripted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class ListRowCursor(RowCursor):
    """Yields prepared rows; optionally fails after ``fail_after`` rows."""

    def __init__(
        self,
        rows: Sequence[RowTuple],
        statement: str = "SELECT 1",
        fail_after: Optional[int] = None,
        on_row: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.rows = list(rows)
        self._statement = statement
        self.fail_after = fail_after
        self.on_row = on_row
        self.closed = False
        self.yielded = 0
        self._started = False

    @property
    def statement(self) -> str:
        return self._statement

    def __iter__(self) -> Iterator[RowTuple]:
        if self._started:
            raise ScanFailed("already consumed")
        self._started = True
        return self._generate()

    def _generate(self) -> Iterator[RowTuple]:
        for index, row in enumerate(self.rows):
            if self.fail_after is not None and index >= self.fail_after:
                raise ScanFailed("connection reset by peer", ConnectionResetError())
            self.yielded += 1
            if self.on_row is not None:
                self.on_row(index)
            yield row
        if self.fail_after is not None and self.fail_after >= len(self.rows):
            raise ScanFailed("connection reset by peer", ConnectionResetError())

    def close(self) -> None:
        self.closed = True


class ListRowCursorFactory(RowCursorFactory):
    """Builds ListRowCursors, validating the split the way real factories do."""

    def __init__(self, rows: Sequence[RowTuple] = (), **cursor_kwargs: Any) -> None:
        self.rows = rows
        self.cursor_kwargs = cursor_kwargs
        self.created: List[ListRowCursor] = []
        self.fetch_sizes: List[int] = []

    def create(self, split: SplitDescriptor, fetch_size: int) -> ListRowCursor:
        query = build_split_scan_query(SqlDialect(), split)
        cursor = ListRowCursor(self.rows, statement=query.sql, **self.cursor_kwargs)
        self.created.append(cursor)
        self.fetch_sizes.append(fetch_size)
        return cursor


class RecordingProgressListener:
    """Collects rows_scanned callbacks."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: List[Tuple[TableId, int]] = []
        self.fail = fail

    def rows_scanned(self, table_id: TableId, rows: int) -> None:
        self.calls.append((table_id, rows))
        if self.fail:
            raise RuntimeError("collector down")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingSink(ChannelEventSink):
    """Channel sink whose data emission fails after a number of rows."""

    def __init__(self, fail_after_rows: int) -> None:
        super().__init__(maxsize=0)
        self.fail_after_rows = fail_after_rows
        self.rows_accepted = 0

    def emit_data_change(self, partition_key: str, event: DataChangeEvent) -> None:
        if self.rows_accepted >= self.fail_after_rows:
            raise ConnectionError("broker unavailable")
        self.rows_accepted += 1
        super().emit_data_change(partition_key, event)
