"""Row cursors over a DB-API connection."""

from typing import Any, Iterator, Optional, Tuple, Type

from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.snapshot.capabilities import RowCursor, RowCursorFactory, SchemaProvider
from snapshot_reader.snapshot.errors import ScanFailed
from snapshot_reader.snapshot.models import RowTuple, SplitDescriptor, TableSchema
from snapshot_reader.snapshot.query import SplitScanQuery, SqlDialect, build_split_scan_query
from snapshot_reader.snapshot.row_mapping import RowMapper

logger = get_logger(__name__)


class SplitRowCursor(RowCursor):
    """
    Runs a split scan query and yields rows in fetch-size batches.

    Subclasses decide how the driver cursor is opened (server-side, unbuffered)
    and how the read transaction ends. Any driver error while enumerating is
    raised as ScanFailed and the cursor cannot be iterated again; callers must
    treat the split as unscanned.
    """

    driver_errors: Tuple[Type[BaseException], ...] = (OSError,)

    def __init__(
        self,
        connection_manager: Any,
        split: SplitDescriptor,
        query: SplitScanQuery,
        schema: TableSchema,
        fetch_size: int,
    ) -> None:
        """
        Initialize split row cursor.

        Args:
            connection_manager: Object whose get_connection() returns a DB-API connection
            split: Split being scanned
            query: Rendered scan statement
            schema: Table schema rows are positioned by
            fetch_size: Rows fetched per round trip
        """
        self.connection_manager = connection_manager
        self.split = split
        self.query = query
        self.schema = schema
        self.fetch_size = fetch_size
        self._connection: Optional[Any] = None
        self._cursor: Optional[Any] = None
        self._started = False
        self._closed = False

    @property
    def statement(self) -> str:
        return self.query.sql

    def __iter__(self) -> Iterator[RowTuple]:
        if self._started:
            raise ScanFailed(
                f"Cursor over split '{self.split.split_id}' is single-pass and was already consumed"
            )
        self._started = True
        return self._rows()

    def _rows(self) -> Iterator[RowTuple]:
        try:
            self._connection = self.connection_manager.get_connection()
            self._cursor = self._open_cursor(self._connection)
            self._cursor.execute(self.query.sql, self.query.params)

            mapper: Optional[RowMapper] = None
            while True:
                batch = self._cursor.fetchmany(self.fetch_size)
                if not batch:
                    break
                if mapper is None:
                    mapper = RowMapper(self.schema, [d[0] for d in self._cursor.description])
                for values in batch:
                    yield mapper.to_row(values)
        except self.driver_errors as e:
            raise ScanFailed(
                f"Scan of split '{self.split.split_id}' of {self.split.table_id} failed: {e}", e
            ) from e
        finally:
            self.close()

    def _open_cursor(self, connection: Any) -> Any:
        """Open the driver cursor the scan runs on."""
        return connection.cursor()

    def _end_read(self, connection: Any) -> None:
        """End the read transaction after the cursor is closed."""

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._cursor is not None:
            try:
                self._cursor.close()
            except self.driver_errors as e:
                logger.warning(f"Failed to close cursor of split '{self.split.split_id}': {e}")
            self._cursor = None

        if self._connection is not None:
            try:
                self._end_read(self._connection)
            except self.driver_errors as e:
                logger.warning(
                    f"Failed to end read transaction of split '{self.split.split_id}': {e}"
                )
            self._connection = None


class SplitRowCursorFactory(RowCursorFactory):
    """Builds split row cursors for one source database."""

    dialect: SqlDialect = SqlDialect()
    cursor_class: Type[SplitRowCursor] = SplitRowCursor

    def __init__(self, connection_manager: Any, schema_provider: SchemaProvider) -> None:
        self.connection_manager = connection_manager
        self.schema_provider = schema_provider

    def create(self, split: SplitDescriptor, fetch_size: int) -> SplitRowCursor:
        query = build_split_scan_query(self.dialect, split)
        schema = self.schema_provider.table_for(split.table_id)
        return self.cursor_class(
            connection_manager=self.connection_manager,
            split=split,
            query=query,
            schema=schema,
            fetch_size=fetch_size,
        )
