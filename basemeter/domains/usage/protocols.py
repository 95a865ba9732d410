"""Usage domain protocols."""

from typing import Optional, Protocol, runtime_checkable

from basemeter.schemas.usage import UsageCharge


@runtime_checkable
class UsageChargeBridgeProtocol(Protocol):
    """Binds submitted tasks to tenants and bills each one at most once."""

    def register(
        self, task_id: object, tenant: object, expected_duration_ms: Optional[float] = None
    ) -> bool:
        """Remember a submitted task. Returns False on a blank task id or tenant."""
        ...

    def charge_once(
        self, task_id: object, observed_duration_ms: Optional[float] = None
    ) -> Optional[UsageCharge]:
        """Bill a completed task; None if it is unknown or already billed."""
        ...
