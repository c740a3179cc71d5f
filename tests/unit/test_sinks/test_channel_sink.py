"""Unit tests for the in-process event channel."""

import queue
import threading

import pytest

from snapshot_reader.sinks.channel import ChannelEventSink
from snapshot_reader.snapshot.models import (
    DataChangeEvent,
    OffsetContext,
    SplitCompletedEvent,
    SplitDescriptor,
    SplitKeyType,
    TableId,
    WatermarkEvent,
    WatermarkKind,
)
from tests.fixtures.fakes import SeqPosition

TABLE = TableId("public", "t")
SPLIT = SplitDescriptor("S1", TABLE, "id", SplitKeyType.INTEGER)


def data_event(value):
    return DataChangeEvent(TABLE, OffsetContext().snapshot(), (value,), "S1")


@pytest.mark.unit
class TestChannelEventSink:
    """Test ordering and capacity of the channel."""

    def test_records_in_emission_order(self):
        sink = ChannelEventSink(maxsize=0)

        sink.emit_watermark("k", SPLIT, SeqPosition(1), WatermarkKind.LOW)
        sink.emit_data_change("k", data_event(1))
        sink.emit_watermark("k", SPLIT, SeqPosition(2), WatermarkKind.HIGH)
        sink.complete_split("k", "S1")

        records = sink.drain()

        assert [r.sequence for r in records] == [0, 1, 2, 3]
        assert records[0].event == WatermarkEvent("S1", WatermarkKind.LOW, SeqPosition(1), "k")
        assert records[1].event.row == (1,)
        assert records[3].event == SplitCompletedEvent("S1", "k")
        assert {r.partition_key for r in records} == {"k"}
        assert len(sink) == 0

    def test_default_capacity_from_settings(self, monkeypatch):
        monkeypatch.setenv("SNAPSHOT_EVENT_QUEUE_SIZE", "3")

        assert ChannelEventSink().maxsize == 3

    def test_get_times_out_when_empty(self):
        sink = ChannelEventSink(maxsize=0)

        with pytest.raises(queue.Empty):
            sink.get(timeout=0.01)

    def test_full_channel_blocks_until_consumed(self):
        """Test producers wait for the consumer when the channel is full."""
        sink = ChannelEventSink(maxsize=1)
        sink.emit_data_change("k", data_event(1))
        emitted = threading.Event()

        def produce():
            sink.emit_data_change("k", data_event(2))
            emitted.set()

        producer = threading.Thread(target=produce)
        producer.start()

        assert not emitted.wait(0.1)
        assert sink.get(timeout=1).event.row == (1,)
        assert emitted.wait(1)
        producer.join()
        assert sink.get(timeout=1).event.row == (2,)

    def test_concurrent_producers_keep_their_order(self):
        sink = ChannelEventSink(maxsize=0)

        def produce(key):
            for value in range(200):
                sink.emit_data_change(key, data_event(value))

        producers = [threading.Thread(target=produce, args=(f"p{n}",)) for n in range(4)]
        for producer in producers:
            producer.start()
        for producer in producers:
            producer.join()

        records = sink.drain()
        assert len(records) == 800
        assert sorted(r.sequence for r in records) == list(range(800))
        for n in range(4):
            own = [r.event.row[0] for r in records if r.partition_key == f"p{n}"]
            assert own == list(range(200))
