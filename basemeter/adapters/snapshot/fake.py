"""Fake snapshot sink for testing.

Records every update for assertions without touching the filesystem.
"""

from typing import List

from basemeter.core.protocols.snapshot import SnapshotSink
from basemeter.schemas.snapshot import LedgerSnapshot, SnapshotUpdate, merge_snapshot


class FakeSnapshotSink(SnapshotSink):
    """Test implementation of SnapshotSink.

    Usage:
        sink = FakeSnapshotSink()
        ledger = SubscriptionLedger(..., sink=sink)
        ledger.set_admin("base-1", True)

        assert sink.persist_count == 1
        assert sink.snapshot.admin_base_id_list == ["base-1"]
    """

    def __init__(self) -> None:
        """Initialize empty recording state."""
        self._snapshot = LedgerSnapshot()
        self.updates: List[SnapshotUpdate] = []
        self.flush_count = 0
        self.closed = False

    @property
    def snapshot(self) -> LedgerSnapshot:
        """Merged state of all recorded updates."""
        return self._snapshot

    def persist(self, update: SnapshotUpdate) -> None:
        """Record and merge the update."""
        self.updates.append(update)
        self._snapshot = merge_snapshot(self._snapshot, update)

    async def flush(self) -> None:
        """Count flush calls."""
        self.flush_count += 1

    async def close(self) -> None:
        """Mark the sink closed."""
        self.closed = True

    # Test helpers

    @property
    def persist_count(self) -> int:
        """Number of persist() calls."""
        return len(self.updates)

    def clear(self) -> None:
        """Reset all recorded state."""
        self._snapshot = LedgerSnapshot()
        self.updates.clear()
        self.flush_count = 0
        self.closed = False
