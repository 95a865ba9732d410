"""Snapshot sink protocol.

Both ledgers hand every mutation to a sink as a partial snapshot. The sink
owns ordering and durability; ledgers never wait on it.
"""

from typing import Protocol, runtime_checkable

from basemeter.schemas.snapshot import LedgerSnapshot, SnapshotUpdate


@runtime_checkable
class SnapshotSink(Protocol):
    """Serialized writer for the ledger snapshot."""

    @property
    def snapshot(self) -> LedgerSnapshot:
        """The merged state the sink will write next."""
        ...

    def persist(self, update: SnapshotUpdate) -> None:
        """Merge ``update`` and schedule a write. Never raises on I/O errors."""
        ...

    async def flush(self) -> None:
        """Wait until every scheduled write has completed."""
        ...

    async def close(self) -> None:
        """Flush and stop accepting work."""
        ...
