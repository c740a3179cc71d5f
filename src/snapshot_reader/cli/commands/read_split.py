"""Read-split command for running one split snapshot read."""

import signal
from typing import Any, List, Optional

import click
from rich.console import Console
from rich.table import Table

from snapshot_reader.common.utils import to_json
from snapshot_reader.observability.metrics import MetricsExporter
from snapshot_reader.sinks.channel import ChannelEventSink
from snapshot_reader.snapshot.context import SplitReadContext
from snapshot_reader.snapshot.models import (
    DataChangeEvent,
    SnapshotResult,
    SnapshotStatus,
    SourceRecord,
    SplitDescriptor,
    SplitKeyType,
    TableId,
    WatermarkEvent,
)
from snapshot_reader.snapshot.task import SnapshotSplitReadTask
from snapshot_reader.sources import SOURCE_KINDS, build_source

console = Console()

EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


@click.command("read-split")
@click.option(
    "--source", "-s", type=click.Choice(SOURCE_KINDS), default="postgres", show_default=True
)
@click.option("--table", "-t", "table", required=True, help="Table as schema.table")
@click.option("--key", "-k", required=True, help="Split key column")
@click.option("--key-type", required=True, help="Split key type, e.g. integer, uuid, timestamp")
@click.option("--start", help="Inclusive lower bound (omit for unbounded)")
@click.option("--end", help="Upper bound (omit for unbounded)")
@click.option("--end-exclusive", is_flag=True, help="Exclude the upper bound from the split")
@click.option("--split-id", help="Split identifier (default: <table>:<start>-<end>)")
@click.option("--fetch-size", type=click.IntRange(min=1), help="Rows per fetch round trip")
@click.option(
    "--sink", type=click.Choice(["console", "kafka"]), default="console", show_default=True
)
@click.option("--topic", help="Kafka topic for --sink kafka")
@click.option(
    "--metrics-port",
    type=click.IntRange(min=1, max=65535),
    help="Serve Prometheus metrics on this port while the split is read",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
)
@click.pass_context
def read_split(
    ctx: click.Context,
    source: str,
    table: str,
    key: str,
    key_type: str,
    start: Optional[str],
    end: Optional[str],
    end_exclusive: bool,
    split_id: Optional[str],
    fetch_size: Optional[int],
    sink: str,
    topic: Optional[str],
    metrics_port: Optional[int],
    output_format: str,
) -> None:
    """Read one key-range split of a table between LOW and HIGH watermarks."""
    split = _build_split(table, key, key_type, start, end, end_exclusive, split_id)

    bundle = build_source(source)
    if sink == "kafka":
        from kafka.errors import KafkaError

        from snapshot_reader.sinks.kafka_sink import KafkaEventSink

        try:
            event_sink: Any = KafkaEventSink(topic=topic)
        except KafkaError as e:
            bundle.close()
            console.print(f"[red]✗ Could not connect to Kafka: {e}[/red]")
            raise click.Abort()
    else:
        # the console prints after the task finishes, so the channel is unbounded
        event_sink = ChannelEventSink(maxsize=0)

    metrics = MetricsExporter(port=metrics_port)
    if metrics_port is not None:
        metrics.start()

    task = SnapshotSplitReadTask(
        split, bundle.capabilities(event_sink), fetch_size=fetch_size, metrics=metrics
    )
    context = SplitReadContext()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: context.cancel())
    try:
        result = task.execute(context)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        bundle.close()
        if sink == "kafka":
            event_sink.close()

    records = event_sink.drain() if isinstance(event_sink, ChannelEventSink) else []
    if output_format == "json":
        for record in records:
            click.echo(to_json({"sequence": record.sequence, **record.event.to_dict()}))
        click.echo(to_json({"result": result.to_dict()}))
    else:
        _display_records(records)
        _display_result(result)

    if result.status is SnapshotStatus.FAILED:
        ctx.exit(EXIT_FAILED)
    if result.status is SnapshotStatus.INTERRUPTED:
        ctx.exit(EXIT_INTERRUPTED)


def _build_split(
    table: str,
    key: str,
    key_type: str,
    start: Optional[str],
    end: Optional[str],
    end_exclusive: bool,
    split_id: Optional[str],
) -> SplitDescriptor:
    try:
        table_id = TableId.parse(table)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--table")
    try:
        parsed_type = SplitKeyType.parse(key_type)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--key-type")
    try:
        split_start = parsed_type.coerce(start) if start is not None else None
        split_end = parsed_type.coerce(end) if end is not None else None
    except ValueError as e:
        raise click.BadParameter(f"Bound does not match {parsed_type.value}: {e}")

    return SplitDescriptor(
        split_id=split_id or f"{table_id}:{start or ''}-{end or ''}",
        table_id=table_id,
        split_key=key,
        split_key_type=parsed_type,
        split_start=split_start,
        split_end=split_end,
        end_inclusive=not end_exclusive,
    )


def _display_records(records: List[SourceRecord]) -> None:
    """Display emitted events in a table."""
    table = Table(show_header=True, header_style="bold magenta", title="Emitted Events")
    table.add_column("Seq", justify="right")
    table.add_column("Event")
    table.add_column("Detail")

    for record in records:
        event = record.event
        if isinstance(event, WatermarkEvent):
            table.add_row(
                str(record.sequence),
                f"[cyan]{event.kind.value.upper()} watermark[/cyan]",
                str(event.position),
            )
        elif isinstance(event, DataChangeEvent):
            table.add_row(str(record.sequence), "row", to_json(list(event.row)))
        else:
            table.add_row(str(record.sequence), "[green]split completed[/green]", event.split_id)

    console.print(table)


def _display_result(result: SnapshotResult) -> None:
    color = {
        SnapshotStatus.COMPLETED: "green",
        SnapshotStatus.INTERRUPTED: "yellow",
        SnapshotStatus.FAILED: "red",
    }[result.status]
    console.print(
        f"\n[bold {color}]Split '{result.split_id}' {result.status.value}[/bold {color}] "
        f"({result.rows_scanned} rows, low={result.low_watermark}, high={result.high_watermark})"
    )
    if result.error is not None:
        console.print(f"[{color}]{type(result.error).__name__}: {result.error}[/{color}]")
