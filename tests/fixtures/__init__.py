"""Test doubles for split snapshot capabilities."""

from tests.fixtures.fakes import (
    FailingSink,
    FakeClock,
    ListRowCursor,
    ListRowCursorFactory,
    RecordingProgressListener,
    ScriptedPositionSource,
    SeqPosition,
)

__all__ = [
    "FailingSink",
    "FakeClock",
    "ListRowCursor",
    "ListRowCursorFactory",
    "RecordingProgressListener",
    "ScriptedPositionSource",
    "SeqPosition",
]
