"""No-op snapshot sink used when no store path is configured."""

from basemeter.core.protocols.snapshot import SnapshotSink
from basemeter.schemas.snapshot import LedgerSnapshot, SnapshotUpdate, merge_snapshot


class NullSnapshotSink(SnapshotSink):
    """Keeps the merged snapshot in memory and never touches disk."""

    def __init__(self, initial: LedgerSnapshot | None = None) -> None:
        """Initialize with an optional starting snapshot."""
        self._snapshot = initial or LedgerSnapshot()

    @property
    def snapshot(self) -> LedgerSnapshot:
        """The merged in-memory state."""
        return self._snapshot

    def persist(self, update: SnapshotUpdate) -> None:
        """Merge only; nothing is written."""
        self._snapshot = merge_snapshot(self._snapshot, update)

    async def flush(self) -> None:
        """No-op flush."""
        pass

    async def close(self) -> None:
        """No-op close."""
        pass
