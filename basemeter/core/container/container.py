"""Dependency Injection Container.

The container is a simple immutable dataclass that holds the ledgers and the
services built on them. It has no construction logic; that belongs in the
factory.
"""

from dataclasses import dataclass

from basemeter.core.protocols import SnapshotSink
from basemeter.domains.admin.service import AdminService
from basemeter.domains.billing.orders import OrderBook
from basemeter.domains.billing.protocols import BillingLedgerProtocol
from basemeter.domains.subscriptions.protocols import SubscriptionLedgerProtocol
from basemeter.domains.usage.protocols import UsageChargeBridgeProtocol


@dataclass(frozen=True)
class Container:
    """Immutable container holding every component built at startup.

    Usage:
        # Production: use the global container built by the factory
        from basemeter.core.container import container
        status = container.subscriptions.consume(base_id)

        # Testing: construct directly with fakes
        test_container = Container(snapshot_sink=FakeSnapshotSink(), ...)
    """

    # Serialized writer for the ledger snapshot
    snapshot_sink: SnapshotSink

    # Ledgers
    subscriptions: SubscriptionLedgerProtocol
    billing: BillingLedgerProtocol

    # Exactly-once charging of completed tasks
    charge_bridge: UsageChargeBridgeProtocol

    # Checkout and payment finalization
    orders: OrderBook

    # Token-gated operator actions
    admin: AdminService

    async def shutdown(self) -> None:
        """Flush and close the snapshot sink."""
        await self.snapshot_sink.close()
