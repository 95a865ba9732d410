"""Subscription domain protocols."""

from typing import Optional, Protocol, runtime_checkable

from basemeter.schemas.subscription import RedeemResult, TenantStatus


@runtime_checkable
class SubscriptionLedgerProtocol(Protocol):
    """Singleton admission gate and paid-period ledger.

    All methods are synchronous and run to completion on the event loop
    thread; mutations hand a partial snapshot to the sink.
    """

    def get_status(self, tenant: object) -> TenantStatus:
        """Admission decision without side effects."""
        ...

    def consume(self, tenant: object) -> TenantStatus:
        """Admission decision that spends one trial use when on the trial."""
        ...

    def activate_plan(
        self, tenant: object, duration_ms: object, paid_at: Optional[int] = None
    ) -> Optional[int]:
        """Extend the paid period. Returns the new expiry or None on bad input."""
        ...

    def get_paid_until(self, tenant: object) -> int:
        """Stored paid-until timestamp, 0 when unset."""
        ...

    def set_admin(self, tenant: object, enabled: bool) -> bool:
        """Add or remove an admin tenant."""
        ...

    def is_admin(self, tenant: object) -> bool:
        """Whether the tenant is on the admin list."""
        ...

    def add_redeem_code(self, code: object, duration_ms: object) -> bool:
        """Register a new single-use code."""
        ...

    def redeem(self, tenant: object, code: object) -> RedeemResult:
        """Spend a code for the tenant."""
        ...
