"""Billing domain protocols."""

from typing import Any, Optional, Protocol, runtime_checkable

from basemeter.schemas.pricing import PricingProfile
from basemeter.schemas.usage import DailyUsageTotal, UsageCharge, UsageSummary, UsageTotal


@runtime_checkable
class BillingLedgerProtocol(Protocol):
    """Singleton per-tenant pricing and usage ledger."""

    def get_pricing(self, tenant: object) -> PricingProfile:
        """Effective pricing for the tenant."""
        ...

    def set_pricing(self, tenant: object, profile: Any) -> bool:
        """Validate, normalize and store a tenant override."""
        ...

    def record_usage(
        self,
        tenant: object,
        minutes: Any = None,
        duration_ms: Any = None,
        units: Any = None,
        occurred_at: Any = None,
    ) -> UsageCharge:
        """Bill one unit of work against the tenant's daily tier position."""
        ...

    def get_usage(self, tenant: object) -> UsageTotal:
        """Cumulative usage."""
        ...

    def get_daily_usage(self, tenant: object, date: Optional[str] = None) -> DailyUsageTotal:
        """Usage on one UTC day (default today)."""
        ...

    def get_usage_summary(self, tenant: object) -> Optional[UsageSummary]:
        """Cumulative plus today's usage and the current tier price."""
        ...
