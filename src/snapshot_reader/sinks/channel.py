"""In-process ordered event channel."""

import itertools
import queue
import threading
from typing import List, Optional

from snapshot_reader.common.config import get_settings
from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.snapshot.capabilities import EventSink
from snapshot_reader.snapshot.models import (
    DataChangeEvent,
    Position,
    SnapshotEvent,
    SourceRecord,
    SplitCompletedEvent,
    SplitDescriptor,
    WatermarkEvent,
    WatermarkKind,
)

logger = get_logger(__name__)


class ChannelEventSink(EventSink):
    """
    Thread-safe, bounded, single ordered channel shared by concurrent splits.

    Every record gets a channel-wide sequence number in the order it was
    accepted. When the channel is full, emitting blocks until the consumer
    catches up.
    """

    def __init__(self, maxsize: Optional[int] = None) -> None:
        """
        Initialize channel sink.

        Args:
            maxsize: Channel capacity, 0 for unbounded (default from config)
        """
        if maxsize is None:
            maxsize = get_settings().snapshot.event_queue_size
        self.maxsize = maxsize
        self._queue: "queue.Queue[SourceRecord]" = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._sequence = itertools.count()

    def emit_watermark(
        self, partition_key: str, split: SplitDescriptor, position: Position, kind: WatermarkKind
    ) -> None:
        self._put(
            partition_key,
            WatermarkEvent(
                split_id=split.split_id, kind=kind, position=position, partition_key=partition_key
            ),
        )

    def emit_data_change(self, partition_key: str, event: DataChangeEvent) -> None:
        self._put(partition_key, event)

    def complete_split(self, partition_key: str, split_id: str) -> None:
        self._put(partition_key, SplitCompletedEvent(split_id=split_id, partition_key=partition_key))

    def _put(self, partition_key: str, event: SnapshotEvent) -> None:
        with self._lock:
            record = SourceRecord(
                partition_key=partition_key, sequence=next(self._sequence), event=event
            )
            self._queue.put(record)

    def get(self, timeout: Optional[float] = None) -> SourceRecord:
        """
        Take the next record, blocking up to ``timeout`` seconds.

        Raises:
            queue.Empty: If no record arrives in time
        """
        return self._queue.get(timeout=timeout)

    def drain(self) -> List[SourceRecord]:
        """Take every record currently in the channel, in channel order."""
        records = []
        while True:
            try:
                records.append(self._queue.get_nowait())
            except queue.Empty:
                return records

    def __len__(self) -> int:
        return self._queue.qsize()
