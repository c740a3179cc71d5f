"""Data model for split snapshot reads."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import UUID

RowTuple = Tuple[Any, ...]


@dataclass(frozen=True)
class TableId:
    """Fully qualified table identifier."""

    schema: Optional[str]
    table: str
    catalog: Optional[str] = None

    @classmethod
    def parse(cls, identifier: str) -> "TableId":
        """
        Parse a dotted identifier.

        Accepts ``table``, ``schema.table`` and ``catalog.schema.table``.

        Raises:
            ValueError: If the identifier is empty or has too many parts
        """
        parts = [p.strip() for p in identifier.split(".")]
        if not identifier or any(not p for p in parts) or len(parts) > 3:
            raise ValueError(f"Invalid table identifier: {identifier!r}")
        if len(parts) == 1:
            return cls(schema=None, table=parts[0])
        if len(parts) == 2:
            return cls(schema=parts[0], table=parts[1])
        return cls(schema=parts[1], table=parts[2], catalog=parts[0])

    def without_catalog(self) -> "TableId":
        return TableId(schema=self.schema, table=self.table)

    def __str__(self) -> str:
        return ".".join(p for p in (self.catalog, self.schema, self.table) if p)


class SplitKeyType(str, Enum):
    """Semantic type of a split key column."""

    SMALLINT = "smallint"
    INTEGER = "integer"
    BIGINT = "bigint"
    NUMERIC = "numeric"
    REAL = "real"
    DOUBLE = "double precision"
    TEXT = "text"
    VARCHAR = "varchar"
    CHAR = "char"
    UUID = "uuid"
    DATE = "date"
    TIMESTAMP = "timestamp"
    TIMESTAMPTZ = "timestamptz"
    TIME = "time"
    BOOLEAN = "boolean"
    # Types without a total order usable for range predicates
    JSON = "json"
    JSONB = "jsonb"
    XML = "xml"
    POINT = "point"

    @classmethod
    def parse(cls, name: str) -> "SplitKeyType":
        """
        Resolve a database type name or alias to a split key type.

        Raises:
            ValueError: If the name is unknown
        """
        normalized = name.strip().lower()
        normalized = _TYPE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unsupported split key type: {name!r}") from None

    @property
    def comparable(self) -> bool:
        """Whether values of this type can bound a range scan."""
        return self not in _NON_ORDERABLE

    def accepts(self, value: Any) -> bool:
        """Whether a Python value is a valid bound for this key type."""
        if self is SplitKeyType.BOOLEAN:
            return isinstance(value, bool)
        if isinstance(value, bool):
            return False
        if self in (SplitKeyType.TIMESTAMP, SplitKeyType.TIMESTAMPTZ):
            return isinstance(value, datetime)
        if self is SplitKeyType.DATE:
            return isinstance(value, date) and not isinstance(value, datetime)
        return isinstance(value, _BOUND_TYPES.get(self, ()))

    def coerce(self, text: str) -> Any:
        """
        Convert a textual bound (e.g. from the command line) to a Python value.

        Raises:
            ValueError: If the text does not parse as this type
        """
        if self in (SplitKeyType.SMALLINT, SplitKeyType.INTEGER, SplitKeyType.BIGINT):
            return int(text)
        if self is SplitKeyType.NUMERIC:
            return Decimal(text)
        if self in (SplitKeyType.REAL, SplitKeyType.DOUBLE):
            return float(text)
        if self is SplitKeyType.UUID:
            return UUID(text)
        if self is SplitKeyType.DATE:
            return date.fromisoformat(text)
        if self in (SplitKeyType.TIMESTAMP, SplitKeyType.TIMESTAMPTZ):
            return datetime.fromisoformat(text)
        if self is SplitKeyType.TIME:
            return time.fromisoformat(text)
        if self is SplitKeyType.BOOLEAN:
            lowered = text.strip().lower()
            if lowered in ("true", "t", "1", "yes"):
                return True
            if lowered in ("false", "f", "0", "no"):
                return False
            raise ValueError(f"Invalid boolean: {text!r}")
        return text


_TYPE_ALIASES = {
    "int2": "smallint",
    "tinyint": "smallint",
    "int": "integer",
    "int4": "integer",
    "mediumint": "integer",
    "int8": "bigint",
    "decimal": "numeric",
    "float4": "real",
    "float": "real",
    "float8": "double precision",
    "double": "double precision",
    "character varying": "varchar",
    "character": "char",
    "bpchar": "char",
    "timestamp without time zone": "timestamp",
    "datetime": "timestamp",
    "timestamp with time zone": "timestamptz",
    "time without time zone": "time",
    "bool": "boolean",
}

_NON_ORDERABLE = {SplitKeyType.JSON, SplitKeyType.JSONB, SplitKeyType.XML, SplitKeyType.POINT}

_BOUND_TYPES: Dict[SplitKeyType, Tuple[type, ...]] = {
    SplitKeyType.SMALLINT: (int,),
    SplitKeyType.INTEGER: (int,),
    SplitKeyType.BIGINT: (int,),
    SplitKeyType.NUMERIC: (int, float, Decimal),
    SplitKeyType.REAL: (int, float, Decimal),
    SplitKeyType.DOUBLE: (int, float, Decimal),
    SplitKeyType.TEXT: (str,),
    SplitKeyType.VARCHAR: (str,),
    SplitKeyType.CHAR: (str,),
    SplitKeyType.UUID: (str, UUID),
    SplitKeyType.TIME: (time,),
}


@dataclass(frozen=True)
class SplitDescriptor:
    """
    A bounded key-range slice of a table, read as one unit of snapshot work.

    A ``None`` bound leaves that side of the key space open. The lower bound
    is always inclusive; the upper bound is inclusive unless
    ``end_inclusive`` is False, in which case the split covers
    ``[split_start, split_end)`` and adjacent splits can share a boundary.
    """

    split_id: str
    table_id: TableId
    split_key: str
    split_key_type: SplitKeyType
    split_start: Any = None
    split_end: Any = None
    end_inclusive: bool = True

    @property
    def is_first_split(self) -> bool:
        return self.split_start is None

    @property
    def is_last_split(self) -> bool:
        return self.split_end is None

    def __str__(self) -> str:
        closing = "]" if self.end_inclusive else ")"
        return (
            f"SplitDescriptor(id={self.split_id}, table={self.table_id}, "
            f"key={self.split_key}, range=[{self.split_start}, {self.split_end}{closing})"
        )


class Position(ABC):
    """
    An opaque, totally ordered point in the change log.

    Concrete positions are ordered dataclasses, so positions of the same
    kind compare with ``<``/``==`` and positions of different kinds refuse to.
    """

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serializable form of the position."""


class WatermarkKind(str, Enum):
    """Which end of a split's scan window a watermark marks."""

    LOW = "low"
    HIGH = "high"


class Operation(str, Enum):
    """Change record semantics; snapshot rows are emitted as reads ('r')."""

    READ = "r"


@dataclass(frozen=True)
class Column:
    """A table column; ``position`` is its 1-based ordinal in the table."""

    name: str
    position: int
    type_name: str = ""


@dataclass(frozen=True)
class TableSchema:
    """Ordered column list of a table."""

    table_id: TableId
    columns: Tuple[Column, ...]

    @property
    def width(self) -> int:
        return max((c.position for c in self.columns), default=0)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Optional[Column]:
        for candidate in self.columns:
            if candidate.name == name:
                return candidate
        return None

    @classmethod
    def from_names(cls, table_id: TableId, names: List[str]) -> "TableSchema":
        """Build a schema whose ordinals follow the order of ``names``."""
        return cls(
            table_id=table_id,
            columns=tuple(Column(name=n, position=i + 1) for i, n in enumerate(names)),
        )


@dataclass(frozen=True)
class SourceOffset:
    """Immutable copy of an offset context, carried by emitted events."""

    position: Optional[Position]
    table_id: Optional[TableId]
    ts_ms: int
    snapshot: bool = True
    rows_by_table: Dict[str, int] = field(default_factory=dict, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position.to_dict() if self.position is not None else None,
            "table": str(self.table_id) if self.table_id is not None else None,
            "ts_ms": self.ts_ms,
            "snapshot": self.snapshot,
            "rows_by_table": dict(self.rows_by_table),
        }


class OffsetContext:
    """Mutable offset state stamped onto outgoing change events."""

    def __init__(self, position: Optional[Position] = None) -> None:
        self.position = position
        self.table_id: Optional[TableId] = None
        self.ts_ms = 0
        self._rows_by_table: Dict[str, int] = {}

    def event(self, table_id: TableId, ts_ms: int) -> None:
        """Attribute the next row read of ``table_id`` to time ``ts_ms``."""
        self.table_id = table_id
        self.ts_ms = ts_ms
        key = str(table_id)
        self._rows_by_table[key] = self._rows_by_table.get(key, 0) + 1

    def advance_to(self, position: Position) -> None:
        self.position = position

    def snapshot(self) -> SourceOffset:
        return SourceOffset(
            position=self.position,
            table_id=self.table_id,
            ts_ms=self.ts_ms,
            rows_by_table=dict(self._rows_by_table),
        )


@dataclass
class SnapshotContext:
    """Per-invocation state of a split read task; never shared between tasks."""

    split: SplitDescriptor
    offset: OffsetContext = field(default_factory=OffsetContext)
    rows_scanned: int = 0
    low_watermark: Optional[Position] = None
    high_watermark: Optional[Position] = None


@dataclass(frozen=True)
class WatermarkEvent:
    """Marks the LOW or HIGH end of a split's scan window in the event stream."""

    split_id: str
    kind: WatermarkKind
    position: Position
    partition_key: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "watermark",
            "split_id": self.split_id,
            "kind": self.kind.value,
            "position": self.position.to_dict(),
            "partition_key": self.partition_key,
        }


@dataclass(frozen=True)
class DataChangeEvent:
    """A snapshot row, positioned by column ordinal."""

    table_id: TableId
    offset: SourceOffset
    row: RowTuple
    split_id: str
    operation: Operation = Operation.READ

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "data",
            "op": self.operation.value,
            "table": str(self.table_id),
            "split_id": self.split_id,
            "offset": self.offset.to_dict(),
            "row": list(self.row),
        }


@dataclass(frozen=True)
class SplitCompletedEvent:
    """No further events for the split will follow."""

    split_id: str
    partition_key: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "split_completed",
            "split_id": self.split_id,
            "partition_key": self.partition_key,
        }


SnapshotEvent = Union[WatermarkEvent, DataChangeEvent, SplitCompletedEvent]


@dataclass(frozen=True)
class SourceRecord:
    """An event as delivered by a sink, with its position in the channel."""

    partition_key: str
    sequence: int
    event: SnapshotEvent


class SnapshotStatus(str, Enum):
    """Outcome of a split read task."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


@dataclass
class SnapshotResult:
    """What a split read task hands back to its scheduler."""

    status: SnapshotStatus
    split_id: str
    offset: Optional[SourceOffset] = None
    error: Optional[Exception] = None
    low_watermark: Optional[Position] = None
    high_watermark: Optional[Position] = None
    rows_scanned: int = 0

    @property
    def completed(self) -> bool:
        return self.status is SnapshotStatus.COMPLETED

    @property
    def retryable(self) -> bool:
        """Whether re-running the split from scratch may succeed."""
        if self.status is SnapshotStatus.COMPLETED:
            return False
        return bool(getattr(self.error, "retryable", True))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "split_id": self.split_id,
            "offset": self.offset.to_dict() if self.offset else None,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "low_watermark": self.low_watermark.to_dict() if self.low_watermark else None,
            "high_watermark": self.high_watermark.to_dict() if self.high_watermark else None,
            "rows_scanned": self.rows_scanned,
        }
