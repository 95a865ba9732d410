"""Snapshot sink adapters."""

from basemeter.adapters.snapshot.fake import FakeSnapshotSink
from basemeter.adapters.snapshot.filesystem import (
    FilesystemSnapshotSink,
    load_snapshot,
    parse_snapshot,
    read_snapshot,
    serialize_snapshot,
)
from basemeter.adapters.snapshot.null import NullSnapshotSink

__all__ = [
    "FakeSnapshotSink",
    "FilesystemSnapshotSink",
    "NullSnapshotSink",
    "load_snapshot",
    "parse_snapshot",
    "read_snapshot",
    "serialize_snapshot",
]
