"""Event sinks delivering split snapshot events to the merge stage."""

from snapshot_reader.sinks.channel import ChannelEventSink

__all__ = ["ChannelEventSink"]
