"""Prometheus metrics exporters."""

from typing import Any, Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from snapshot_reader.common.config import get_settings


# Split snapshot metrics
snapshot_rows_scanned_total = Counter(
    "snapshot_rows_scanned_total",
    "Total number of rows read by split snapshot scans",
    ["table"],
)

snapshot_rows_progress = Gauge(
    "snapshot_rows_progress",
    "Rows scanned so far by an in-flight split, updated on each progress report",
    ["table", "split"],
)

snapshot_splits_total = Counter(
    "snapshot_splits_total",
    "Total number of split read tasks by outcome",
    ["table", "outcome"],
)

snapshot_split_duration_seconds = Histogram(
    "snapshot_split_duration_seconds",
    "Wall-clock duration of a split read task",
    ["table"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0],
)

snapshot_watermarks_total = Counter(
    "snapshot_watermarks_total",
    "Total number of watermark events emitted",
    ["kind"],
)

snapshot_errors_total = Counter(
    "snapshot_errors_total",
    "Total number of split read errors",
    ["table", "error_type"],
)


class MetricsExporter:
    """Prometheus metrics exporter."""

    def __init__(self, port: Optional[int] = None) -> None:
        """
        Initialize metrics exporter.

        Args:
            port: Port to expose metrics on (default from config)
        """
        self.settings = get_settings()
        self.port = port or self.settings.observability.metrics_port
        self._server_started = False

    def start(self) -> None:
        """Start metrics HTTP server."""
        if not self._server_started:
            start_http_server(self.port)
            self._server_started = True

    def record_split_outcome(self, table: str, outcome: str, duration: float) -> None:
        """
        Record the outcome of one split read task.

        Args:
            table: Table identifier
            outcome: completed, interrupted or failed
            duration: Task duration in seconds
        """
        snapshot_splits_total.labels(table=table, outcome=outcome).inc()
        snapshot_split_duration_seconds.labels(table=table).observe(duration)

    def record_rows(self, table: str, rows: int) -> None:
        """Add rows emitted by a finished or aborted scan."""
        if rows > 0:
            snapshot_rows_scanned_total.labels(table=table).inc(rows)

    def record_watermark(self, kind: str) -> None:
        snapshot_watermarks_total.labels(kind=kind).inc()

    def record_error(self, table: str, error_type: str) -> None:
        """
        Record a split read error.

        Args:
            table: Table identifier
            error_type: Error class name
        """
        snapshot_errors_total.labels(table=table, error_type=error_type).inc()

    def update_progress(self, table: str, split_id: str, rows: int) -> None:
        snapshot_rows_progress.labels(table=table, split=split_id).set(rows)

    def clear_progress(self, table: str, split_id: str) -> None:
        """Drop the progress gauge of a split that is no longer running."""
        try:
            snapshot_rows_progress.remove(table, split_id)
        except KeyError:
            pass


class MetricsProgressListener:
    """Progress collector that publishes rows-scanned callbacks as a gauge."""

    def __init__(self, split_id: str, exporter: Optional[MetricsExporter] = None) -> None:
        self.split_id = split_id
        self.exporter = exporter or MetricsExporter()

    def rows_scanned(self, table_id: Any, rows: int) -> None:
        self.exporter.update_progress(str(table_id), self.split_id, rows)
