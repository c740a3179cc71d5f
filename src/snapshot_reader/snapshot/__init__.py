"""Watermark-bracketed split snapshot reading."""

from snapshot_reader.snapshot.capabilities import (
    CancellationContext,
    EventSink,
    PositionSource,
    ProgressListener,
    RowCursor,
    RowCursorFactory,
    SchemaProvider,
    SnapshotCapabilities,
)
from snapshot_reader.snapshot.context import SplitReadContext
from snapshot_reader.snapshot.errors import (
    QueryConstructionError,
    ScanFailed,
    SnapshotError,
    SnapshotInterrupted,
    SnapshottingFailed,
    SourceUnavailable,
    WatermarkAcquisitionFailed,
)
from snapshot_reader.snapshot.models import (
    Column,
    DataChangeEvent,
    Operation,
    Position,
    SnapshotResult,
    SnapshotStatus,
    SourceOffset,
    SourceRecord,
    SplitCompletedEvent,
    SplitDescriptor,
    SplitKeyType,
    TableId,
    TableSchema,
    WatermarkEvent,
    WatermarkKind,
)
from snapshot_reader.snapshot.task import SnapshotSplitReadTask

__all__ = [
    # Capabilities
    "CancellationContext",
    "EventSink",
    "PositionSource",
    "ProgressListener",
    "RowCursor",
    "RowCursorFactory",
    "SchemaProvider",
    "SnapshotCapabilities",
    "SplitReadContext",
    # Errors
    "QueryConstructionError",
    "ScanFailed",
    "SnapshotError",
    "SnapshotInterrupted",
    "SnapshottingFailed",
    "SourceUnavailable",
    "WatermarkAcquisitionFailed",
    # Model
    "Column",
    "DataChangeEvent",
    "Operation",
    "Position",
    "SnapshotResult",
    "SnapshotStatus",
    "SourceOffset",
    "SourceRecord",
    "SplitCompletedEvent",
    "SplitDescriptor",
    "SplitKeyType",
    "TableId",
    "TableSchema",
    "WatermarkEvent",
    "WatermarkKind",
    # Task
    "SnapshotSplitReadTask",
]
