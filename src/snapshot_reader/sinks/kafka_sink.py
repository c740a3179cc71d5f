"""Kafka event sink."""

import threading
from typing import Any, Dict, List, Optional, Tuple

from kafka import KafkaProducer
from kafka.errors import KafkaError

from snapshot_reader.common.config import get_settings
from snapshot_reader.common.utils import to_json
from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.snapshot.capabilities import EventSink
from snapshot_reader.snapshot.models import (
    DataChangeEvent,
    Position,
    SnapshotEvent,
    SplitCompletedEvent,
    SplitDescriptor,
    WatermarkEvent,
    WatermarkKind,
)

logger = get_logger(__name__)

# (partition key, split id)
SplitKey = Tuple[str, str]


class KafkaEventSink(EventSink):
    """
    Publishes snapshot events to a Kafka topic keyed by partition key.

    Events sharing a key land on one Kafka partition, which keeps their order.
    The producer allows a single in-flight request so retries cannot reorder
    records. Delivery futures are tracked per split: before a split's HIGH
    watermark and again before its completion record, every record sent for
    that split must be acknowledged. A lost record therefore fails only the
    split it belongs to.
    """

    def __init__(
        self,
        topic: Optional[str] = None,
        bootstrap_servers: Optional[str] = None,
        producer: Optional[KafkaProducer] = None,
        delivery_timeout: float = 30.0,
    ) -> None:
        """
        Initialize Kafka sink.

        Args:
            topic: Destination topic (default: <topic_prefix>.snapshot)
            bootstrap_servers: Kafka bootstrap servers (default from config)
            producer: Pre-built producer, mainly for tests
            delivery_timeout: Seconds to wait for delivery confirmation
        """
        settings = get_settings()
        self.topic = topic or f"{settings.kafka.topic_prefix}.snapshot"
        self.bootstrap_servers = bootstrap_servers or settings.kafka.bootstrap_servers
        self.delivery_timeout = delivery_timeout
        self._producer = producer or KafkaProducer(
            bootstrap_servers=self.bootstrap_servers,
            key_serializer=lambda k: k.encode("utf-8"),
            value_serializer=lambda v: to_json(v).encode("utf-8"),
            acks="all",
            retries=5,
            max_in_flight_requests_per_connection=1,
        )
        self._lock = threading.Lock()
        self._pending: Dict[SplitKey, List[Any]] = {}

        logger.info(f"Kafka event sink publishing to {self.topic} via {self.bootstrap_servers}")

    def emit_watermark(
        self, partition_key: str, split: SplitDescriptor, position: Position, kind: WatermarkKind
    ) -> None:
        key = (partition_key, split.split_id)
        if kind is WatermarkKind.LOW:
            self._discard(key)
        else:
            self._confirm(key)
        self._send(
            key,
            WatermarkEvent(
                split_id=split.split_id, kind=kind, position=position, partition_key=partition_key
            ),
        )

    def emit_data_change(self, partition_key: str, event: DataChangeEvent) -> None:
        self._send((partition_key, event.split_id), event)

    def complete_split(self, partition_key: str, split_id: str) -> None:
        key = (partition_key, split_id)
        self._confirm(key)
        self._send(key, SplitCompletedEvent(split_id=split_id, partition_key=partition_key))
        self._confirm(key)

    def _send(self, key: SplitKey, event: SnapshotEvent) -> None:
        with self._lock:
            future = self._producer.send(self.topic, key=key[0], value=event.to_dict())
            self._pending.setdefault(key, []).append(future)

    def _discard(self, key: SplitKey) -> None:
        """Forget records of an earlier, abandoned attempt of the split."""
        with self._lock:
            dropped = self._pending.pop(key, [])
        if dropped:
            logger.warning(
                f"Split '{key[1]}' restarted with {len(dropped)} unconfirmed records "
                "from a previous attempt",
                extra={"split_id": key[1]},
            )

    def _confirm(self, key: SplitKey) -> None:
        """
        Wait until every record sent for one split is acknowledged.

        Raises:
            KafkaError: If any record of the split failed to be delivered
        """
        with self._lock:
            pending = self._pending.pop(key, [])
        self._wait(pending, key[1])

    def _wait(self, futures: List[Any], split_id: str) -> None:
        for future in futures:
            try:
                future.get(timeout=self.delivery_timeout)
            except KafkaError as e:
                logger.error(
                    f"Failed to deliver snapshot event of split '{split_id}' to {self.topic}: {e}",
                    extra={"split_id": split_id},
                )
                raise

    def flush(self) -> None:
        """
        Wait until every sent record of every split is acknowledged.

        Raises:
            KafkaError: If any record failed to be delivered
        """
        with self._lock:
            pending, self._pending = self._pending, {}
        self._producer.flush(timeout=self.delivery_timeout)
        for (_, split_id), futures in pending.items():
            self._wait(futures, split_id)

    def close(self) -> None:
        """Flush and close the producer."""
        try:
            self.flush()
        finally:
            self._producer.close()
            logger.info("Closed Kafka producer")
