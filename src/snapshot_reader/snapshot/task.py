"""Watermark-bracketed snapshot read of a single table split."""

import threading
import time
from typing import Callable, Optional

from snapshot_reader.common.config import get_settings
from snapshot_reader.common.utils import format_duration
from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.observability.metrics import MetricsExporter, MetricsProgressListener
from snapshot_reader.snapshot.capabilities import (
    CancellationContext,
    RowCursor,
    SnapshotCapabilities,
)
from snapshot_reader.snapshot.context import SplitReadContext
from snapshot_reader.snapshot.errors import (
    ScanFailed,
    SnapshotError,
    SnapshotInterrupted,
    SnapshottingFailed,
    WatermarkAcquisitionFailed,
)
from snapshot_reader.snapshot.models import (
    DataChangeEvent,
    OffsetContext,
    Position,
    SnapshotContext,
    SnapshotResult,
    SnapshotStatus,
    SplitDescriptor,
    WatermarkKind,
)
from snapshot_reader.snapshot.progress import ProgressReporter

logger = get_logger(__name__)


class SnapshotSplitReadTask:
    """
    Reads one split as a snapshot bracketed by change log watermarks.

    The protocol per invocation:

    1. acquire the LOW watermark from the position source and emit it,
    2. scan the split, emitting every row as a snapshot read event,
    3. acquire the HIGH watermark and emit it,
    4. signal split completion to the sink.

    Rows are only guaranteed to reflect some state of the table between LOW
    and HIGH; the merge stage downstream reconciles them against change log
    events inside that window. HIGH and completion are never emitted unless
    the scan finished, so an aborted attempt leaves an open bracket that the
    merge stage discards and the scheduler may retry from scratch.

    ``execute`` never raises for split-level problems. It returns a
    SnapshotResult whose status is COMPLETED, INTERRUPTED or FAILED.
    """

    def __init__(
        self,
        split: SplitDescriptor,
        capabilities: SnapshotCapabilities,
        fetch_size: Optional[int] = None,
        progress_interval_seconds: Optional[float] = None,
        partition_key: Optional[str] = None,
        metrics: Optional[MetricsExporter] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize split read task.

        Args:
            split: Split to read
            capabilities: Position source, cursor factory, event sink and progress listener
            fetch_size: Rows per fetch round trip (default from config)
            progress_interval_seconds: Minimum time between progress reports (default from config)
            partition_key: Channel key events are emitted under (default: the table id)
            metrics: Metrics exporter (default: a new exporter)
            clock: Monotonic clock in seconds, used for intervals and durations
            wall_clock: Epoch clock in seconds, used to stamp read time on events

        Raises:
            ValueError: If fetch_size or progress_interval_seconds is not positive
        """
        settings = get_settings()
        if fetch_size is None:
            fetch_size = settings.snapshot.fetch_size
        if progress_interval_seconds is None:
            progress_interval_seconds = settings.snapshot.progress_interval_seconds
        if fetch_size <= 0:
            raise ValueError(f"fetch_size must be positive, got {fetch_size}")
        if progress_interval_seconds <= 0:
            raise ValueError(
                f"progress_interval_seconds must be positive, got {progress_interval_seconds}"
            )

        self.split = split
        self.capabilities = capabilities
        self.fetch_size = fetch_size
        self.progress_interval_seconds = progress_interval_seconds
        self.partition_key = partition_key or str(split.table_id)
        self.metrics = metrics or MetricsExporter()
        self.clock = clock
        self.wall_clock = wall_clock
        self._lock = threading.Lock()

    @property
    def _log_extra(self) -> dict:
        return {"split_id": self.split.split_id, "table": str(self.split.table_id)}

    def execute(self, context: Optional[CancellationContext] = None) -> SnapshotResult:
        """
        Run the split read.

        Args:
            context: Cancellation signal checked between rows

        Returns:
            Outcome of the read

        Raises:
            RuntimeError: If the task is already executing
        """
        if not self._lock.acquire(blocking=False):
            raise RuntimeError(f"Split read task for '{self.split.split_id}' is already executing")
        try:
            return self._execute(context if context is not None else SplitReadContext())
        finally:
            self._lock.release()

    def _execute(self, context: CancellationContext) -> SnapshotResult:
        started = self.clock()
        table = str(self.split.table_id)
        snapshot_context = self._prepare()

        try:
            result = self._do_execute(context, snapshot_context)
        except SnapshotInterrupted as e:
            logger.warning("Snapshot was interrupted before completion", extra=self._log_extra)
            result = self._result(SnapshotStatus.INTERRUPTED, snapshot_context, error=e)
        except SnapshotError as e:
            logger.error(
                f"Snapshot of split '{self.split.split_id}' failed: {e}", extra=self._log_extra
            )
            self.metrics.record_error(table, type(e).__name__)
            result = self._result(SnapshotStatus.FAILED, snapshot_context, error=e)
        except Exception as e:
            logger.error(
                f"Unexpected error in snapshot of split '{self.split.split_id}': {e}",
                exc_info=True,
                extra=self._log_extra,
            )
            error = SnapshottingFailed(self.split.table_id, e)
            self.metrics.record_error(table, type(e).__name__)
            result = self._result(SnapshotStatus.FAILED, snapshot_context, error=error)

        self.metrics.record_rows(table, snapshot_context.rows_scanned)
        self.metrics.record_split_outcome(table, result.status.value, self.clock() - started)
        self.metrics.clear_progress(table, self.split.split_id)
        return result

    def _prepare(self) -> SnapshotContext:
        return SnapshotContext(split=self.split, offset=OffsetContext())

    def _do_execute(
        self, context: CancellationContext, snapshot_context: SnapshotContext
    ) -> SnapshotResult:
        # Query construction happens before LOW so a malformed split emits nothing
        cursor = self.capabilities.cursor_factory.create(self.split, self.fetch_size)

        try:
            low_watermark = self._acquire_watermark(WatermarkKind.LOW)
            logger.info(
                f"Snapshot step 1 - Determining low watermark {low_watermark} "
                f"for split {self.split}",
                extra=self._log_extra,
            )
            snapshot_context.low_watermark = low_watermark
            snapshot_context.offset.advance_to(low_watermark)
            if isinstance(context, SplitReadContext):
                context.low_watermark = low_watermark
            self._dispatch_watermark(low_watermark, WatermarkKind.LOW)
        except SnapshotError:
            cursor.close()
            raise

        logger.info("Snapshot step 2 - Snapshotting data", extra=self._log_extra)
        self._create_data_events(context, snapshot_context, cursor)

        high_watermark = self._acquire_watermark(WatermarkKind.HIGH)
        self._check_bracket(low_watermark, high_watermark)
        logger.info(
            f"Snapshot step 3 - Determining high watermark {high_watermark} for split {self.split}",
            extra=self._log_extra,
        )
        snapshot_context.high_watermark = high_watermark
        if isinstance(context, SplitReadContext):
            context.high_watermark = high_watermark
        self._dispatch_watermark(high_watermark, WatermarkKind.HIGH)

        self._dispatch(
            lambda: self.capabilities.event_sink.complete_split(
                self.partition_key, self.split.split_id
            )
        )
        snapshot_context.offset.advance_to(high_watermark)
        return self._result(
            SnapshotStatus.COMPLETED, snapshot_context, offset=snapshot_context.offset
        )

    def _acquire_watermark(self, kind: WatermarkKind) -> Position:
        try:
            return self.capabilities.position_source.current_position()
        except Exception as e:
            raise WatermarkAcquisitionFailed(kind.value, self.split.split_id, e) from e

    def _check_bracket(self, low: Position, high: Position) -> None:
        try:
            inverted = high < low
        except TypeError as e:
            raise WatermarkAcquisitionFailed(
                WatermarkKind.HIGH.value, self.split.split_id, e, reason="positions not comparable"
            ) from e
        if inverted:
            raise WatermarkAcquisitionFailed(
                WatermarkKind.HIGH.value,
                self.split.split_id,
                reason=f"high watermark {high} precedes low watermark {low}",
            )

    def _dispatch_watermark(self, position: Position, kind: WatermarkKind) -> None:
        self._dispatch(
            lambda: self.capabilities.event_sink.emit_watermark(
                self.partition_key, self.split, position, kind
            )
        )
        self.metrics.record_watermark(kind.value)

    def _dispatch(self, emit: Callable[[], None]) -> None:
        try:
            emit()
        except SnapshotError:
            raise
        except Exception as e:
            raise SnapshottingFailed(self.split.table_id, e) from e

    def _create_data_events(
        self,
        context: CancellationContext,
        snapshot_context: SnapshotContext,
        cursor: RowCursor,
    ) -> None:
        """Dispatch the data change events for the rows of the split."""
        split = self.split
        table_id = split.table_id
        listener = self.capabilities.progress_listener
        if listener is None:
            listener = MetricsProgressListener(split.split_id, self.metrics)
        reporter = ProgressReporter(
            split_id=split.split_id,
            table_id=table_id,
            listener=listener,
            interval_seconds=self.progress_interval_seconds,
            clock=self.clock,
        )

        logger.info(
            f"Exporting data from split '{split.split_id}' of table {table_id}",
            extra=self._log_extra,
        )
        logger.info(
            f"For split '{split.split_id}' of table {table_id} "
            f"using select statement: '{cursor.statement}'",
            extra=self._log_extra,
        )

        rows = 0
        try:
            with cursor:
                for row in cursor:
                    if not context.is_running():
                        raise SnapshotInterrupted(split.split_id, rows)

                    snapshot_context.offset.event(table_id, int(self.wall_clock() * 1000))
                    event = DataChangeEvent(
                        table_id=table_id,
                        offset=snapshot_context.offset.snapshot(),
                        row=row,
                        split_id=split.split_id,
                    )
                    self._dispatch(
                        lambda: self.capabilities.event_sink.emit_data_change(
                            self.partition_key, event
                        )
                    )
                    rows += 1
                    snapshot_context.rows_scanned = rows
                    reporter.on_row(rows)

            if not context.is_running():
                raise SnapshotInterrupted(split.split_id, rows)
        except ScanFailed as e:
            raise SnapshottingFailed(table_id, e) from e
        finally:
            reporter.stop()

        logger.info(
            f"Finished exporting {rows} records for split '{split.split_id}', "
            f"total duration '{format_duration(reporter.elapsed_millis())}'",
            extra=self._log_extra,
        )

    def _result(
        self,
        status: SnapshotStatus,
        snapshot_context: SnapshotContext,
        offset: Optional[OffsetContext] = None,
        error: Optional[Exception] = None,
    ) -> SnapshotResult:
        return SnapshotResult(
            status=status,
            split_id=self.split.split_id,
            offset=offset.snapshot() if offset is not None else None,
            error=error,
            low_watermark=snapshot_context.low_watermark,
            high_watermark=snapshot_context.high_watermark,
            rows_scanned=snapshot_context.rows_scanned,
        )
