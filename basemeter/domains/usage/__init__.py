"""Usage domain: exactly-once charging of completed tasks."""

from basemeter.domains.usage.charge_bridge import UsageChargeBridge
from basemeter.domains.usage.protocols import UsageChargeBridgeProtocol
from basemeter.domains.usage.types import PendingBillingTask

__all__ = ["PendingBillingTask", "UsageChargeBridge", "UsageChargeBridgeProtocol"]
