"""Fake billing ledger for testing.

Records all calls for assertions and returns canned charges.
"""

from typing import Any, Dict, List, Optional, Tuple

from basemeter.core.tenants import normalize_tenant_id
from basemeter.domains.billing.protocols import BillingLedgerProtocol
from basemeter.domains.billing.tiers import resolve_minutes
from basemeter.schemas.pricing import PricingProfile
from basemeter.schemas.usage import DailyUsageTotal, UsageCharge, UsageSummary, UsageTotal


class FakeBillingLedger(BillingLedgerProtocol):
    """Test implementation of BillingLedgerProtocol.

    Every recorded unit costs ``unit_price`` per minute; no tiers.

    Usage:
        billing = FakeBillingLedger()
        bridge = UsageChargeBridge(billing)
        bridge.register("task-1", "base-1", expected_duration_ms=90_000)
        bridge.charge_once("task-1")

        assert billing.record_calls == [("base-1", {"duration_ms": 90_000})]
    """

    def __init__(self, unit_price: float = 0.1, unit_label: str = "minute") -> None:
        """Initialize empty recording state."""
        self.pricing = PricingProfile(model_unit_price=unit_price, model_unit_label=unit_label)
        self.record_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.overrides: Dict[str, Any] = {}
        self._usage: Dict[str, UsageTotal] = {}

    def get_pricing(self, tenant: object) -> PricingProfile:
        return self.pricing

    def set_pricing(self, tenant: object, profile: Any) -> bool:
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return False
        self.overrides[base_id] = profile
        return True

    def record_usage(
        self,
        tenant: object,
        minutes: Any = None,
        duration_ms: Any = None,
        units: Any = None,
        occurred_at: Any = None,
    ) -> UsageCharge:
        """Record the call and accrue a flat-rate charge."""
        base_id = normalize_tenant_id(tenant)
        kwargs = {
            name: value
            for name, value in (
                ("minutes", minutes),
                ("duration_ms", duration_ms),
                ("units", units),
                ("occurred_at", occurred_at),
            )
            if value is not None
        }
        self.record_calls.append((base_id, kwargs))
        if not base_id:
            return UsageCharge()

        quantity = resolve_minutes(minutes=minutes, duration_ms=duration_ms, units=units)
        prev = self._usage.get(base_id) or UsageTotal()
        total = UsageTotal(
            count=prev.count + quantity,
            cost=round(prev.cost + quantity * self.pricing.model_unit_price, 4),
        )
        self._usage[base_id] = total
        return UsageCharge(
            count=total.count,
            minutes=total.minutes,
            cost=total.cost,
            daily_minutes=total.count,
            daily_cost=total.cost,
            unit_price=self.pricing.model_unit_price,
            unit_label=self.pricing.model_unit_label,
        )

    def get_usage(self, tenant: object) -> UsageTotal:
        return self._usage.get(normalize_tenant_id(tenant)) or UsageTotal()

    def get_daily_usage(self, tenant: object, date: Optional[str] = None) -> DailyUsageTotal:
        total = self.get_usage(tenant)
        return DailyUsageTotal(date=date or "1970-01-01", minutes=total.count, cost=total.cost)

    def get_usage_summary(self, tenant: object) -> Optional[UsageSummary]:
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return None
        total = self.get_usage(base_id)
        return UsageSummary(
            base_id=base_id,
            count=total.count,
            minutes=total.minutes,
            cost=total.cost,
            daily_minutes=total.count,
            daily_cost=total.cost,
            unit_price=self.pricing.model_unit_price,
            unit_label=self.pricing.model_unit_label,
        )

    # Test helpers

    @property
    def record_count(self) -> int:
        return len(self.record_calls)

    def clear(self) -> None:
        """Reset all recorded state."""
        self.record_calls.clear()
        self.overrides.clear()
        self._usage.clear()
