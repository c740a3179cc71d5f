"""Concrete source databases a split read task can be composed for."""

from dataclasses import dataclass
from typing import Any, Optional

from snapshot_reader.snapshot.capabilities import (
    EventSink,
    PositionSource,
    ProgressListener,
    RowCursorFactory,
    SchemaProvider,
    SnapshotCapabilities,
)

SOURCE_KINDS = ("postgres", "mysql")


@dataclass
class SourceBundle:
    """Everything one source database contributes to a split read task."""

    kind: str
    connection_manager: Any
    position_source: PositionSource
    schema_provider: SchemaProvider
    cursor_factory: RowCursorFactory

    def capabilities(
        self, event_sink: EventSink, progress_listener: Optional[ProgressListener] = None
    ) -> SnapshotCapabilities:
        return SnapshotCapabilities(
            position_source=self.position_source,
            cursor_factory=self.cursor_factory,
            event_sink=event_sink,
            progress_listener=progress_listener,
        )

    def close(self) -> None:
        self.connection_manager.close()


def build_source(kind: str, connection_manager: Optional[Any] = None) -> SourceBundle:
    """
    Wire the capabilities of one source database.

    Each split read task should get its own bundle: the position queries and
    the scan share one connection and must not interleave with another split.

    Args:
        kind: ``postgres`` or ``mysql``
        connection_manager: Existing connection manager (default: built from settings)

    Raises:
        ValueError: If the source kind is unknown
    """
    if kind == "postgres":
        from snapshot_reader.sources.postgres import (
            PostgresConnectionManager,
            PostgresPositionSource,
            PostgresRowCursorFactory,
            PostgresSchemaProvider,
        )

        manager = connection_manager or PostgresConnectionManager.from_settings()
        schema_provider: SchemaProvider = PostgresSchemaProvider(manager)
        return SourceBundle(
            kind=kind,
            connection_manager=manager,
            position_source=PostgresPositionSource(manager),
            schema_provider=schema_provider,
            cursor_factory=PostgresRowCursorFactory(manager, schema_provider),
        )

    if kind == "mysql":
        from snapshot_reader.sources.mysql import (
            MySQLConnectionManager,
            MySQLPositionSource,
            MySQLRowCursorFactory,
            MySQLSchemaProvider,
        )

        manager = connection_manager or MySQLConnectionManager.from_settings()
        schema_provider = MySQLSchemaProvider(manager)
        return SourceBundle(
            kind=kind,
            connection_manager=manager,
            position_source=MySQLPositionSource(manager),
            schema_provider=schema_provider,
            cursor_factory=MySQLRowCursorFactory(manager, schema_provider),
        )

    raise ValueError(f"Unknown source kind: {kind!r} (expected one of {SOURCE_KINDS})")
