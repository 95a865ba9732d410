"""Billing ledger: metered cost per tenant.

One instance lives in the container. ``record_usage`` prices each unit of
work against the tenant's running total for the day, so a single call that
crosses a tier boundary is split across both tiers. Totals are kept per day
(UTC) and cumulatively; both are handed to the snapshot sink after every
change.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel

from basemeter.core.clock import Clock, now_ms, utc_date_key
from basemeter.core.logging import ContextualLogger
from basemeter.core.protocols.snapshot import SnapshotSink
from basemeter.core.tenants import normalize_tenant_id
from basemeter.domains.billing.protocols import BillingLedgerProtocol
from basemeter.domains.billing.tiers import (
    calculate_tiered_cost,
    resolve_current_tier_unit_price,
    resolve_minutes,
    round_money,
)
from basemeter.domains.pricing.resolver import coerce_unit_price, normalize_pricing
from basemeter.schemas.pricing import PricingProfile
from basemeter.schemas.snapshot import SnapshotUpdate
from basemeter.schemas.usage import (
    DailyUsageRecord,
    DailyUsageTotal,
    UsageCharge,
    UsageSummary,
    UsageTotal,
)

logger = ContextualLogger(logging.getLogger(__name__))

_UNIT_PRICE_KEYS = ("modelUnitPrice", "model_unit_price")


class BillingLedger(BillingLedgerProtocol):
    """In-memory pricing and usage state with write-behind persistence."""

    calculate_tiered_cost = staticmethod(calculate_tiered_cost)
    resolve_current_tier_unit_price = staticmethod(resolve_current_tier_unit_price)

    def __init__(
        self,
        *,
        default_pricing: PricingProfile,
        pricing_by_base_id: Optional[Mapping[str, PricingProfile]] = None,
        usage_by_base_id: Optional[Mapping[str, UsageTotal]] = None,
        daily_usage_by_base_id: Optional[Mapping[str, Mapping[str, DailyUsageRecord]]] = None,
        sink: Optional[SnapshotSink] = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the ledger from the installation default and the loaded snapshot."""
        self._default_pricing = default_pricing
        self._sink = sink
        self._clock = clock

        self._pricing: Dict[str, PricingProfile] = {
            key: profile.model_copy(deep=True)
            for key, profile in (pricing_by_base_id or {}).items()
            if normalize_tenant_id(key)
        }
        self._usage: Dict[str, UsageTotal] = {
            key: total.model_copy()
            for key, total in (usage_by_base_id or {}).items()
            if normalize_tenant_id(key)
        }
        # tenant -> YYYY-MM-DD -> record
        self._daily: Dict[str, Dict[str, DailyUsageRecord]] = {
            key: {day: record.model_copy() for day, record in by_date.items()}
            for key, by_date in (daily_usage_by_base_id or {}).items()
            if normalize_tenant_id(key)
        }

    @property
    def default_pricing(self) -> PricingProfile:
        return self._default_pricing

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def get_pricing(self, tenant: object) -> PricingProfile:
        """Tenant override resolved over the default; the default itself when none."""
        override = self._pricing.get(normalize_tenant_id(tenant))
        if override is None:
            return self._default_pricing.model_copy(deep=True)
        return normalize_pricing(override, self._default_pricing)

    def set_pricing(self, tenant: object, profile: Any) -> bool:
        """Store a pricing override for ``tenant``.

        Rejects a missing tenant, a profile that is not an object, and an
        explicit unit price that is not a finite non-negative number. Other
        invalid fields fall back to the default during normalization.
        """
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return False

        if profile is None:
            raw: Mapping[str, Any] = {}
        elif isinstance(profile, BaseModel):
            raw = profile.model_dump(by_alias=True)
        elif isinstance(profile, Mapping):
            raw = profile
        else:
            return False

        for key in _UNIT_PRICE_KEYS:
            if raw.get(key) is not None and coerce_unit_price(raw[key]) is None:
                logger.with_context(base_id=base_id).info(
                    "Rejected pricing: invalid unit price %r", raw[key]
                )
                return False

        self._pricing[base_id] = normalize_pricing(raw, self._default_pricing)
        self._persist()
        logger.info("Pricing updated for %s", base_id)
        return True

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def record_usage(
        self,
        tenant: object,
        minutes: Any = None,
        duration_ms: Any = None,
        units: Any = None,
        occurred_at: Any = None,
    ) -> UsageCharge:
        """Bill one unit of work and return the updated totals.

        The quantity comes from ``minutes``, else ``duration_ms``, else
        ``units``, else 1. The day is taken from ``occurred_at`` (epoch ms,
        default now) in UTC. A missing tenant yields an empty charge and
        changes nothing.
        """
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return UsageCharge()

        pricing = self.get_pricing(base_id)
        quantity = resolve_minutes(minutes=minutes, duration_ms=duration_ms, units=units)
        date_key = self._date_key(occurred_at)

        by_date = self._daily.setdefault(base_id, {})
        daily_prev = by_date.get(date_key) or DailyUsageRecord()
        delta = calculate_tiered_cost(
            pricing.tiered_prices,
            daily_prev.minutes,
            quantity,
            pricing.model_unit_price,
        )

        daily = DailyUsageRecord(
            minutes=daily_prev.minutes + quantity,
            cost=round_money(daily_prev.cost + delta),
        )
        by_date[date_key] = daily

        prev = self._usage.get(base_id) or UsageTotal()
        total = UsageTotal(count=prev.count + quantity, cost=round_money(prev.cost + delta))
        self._usage[base_id] = total

        self._persist()
        logger.with_context(base_id=base_id).debug(
            "Recorded %s min on %s: +%.4f (day %.4f, total %.4f)",
            quantity,
            date_key,
            delta,
            daily.cost,
            total.cost,
        )

        return UsageCharge(
            count=total.count,
            minutes=total.minutes,
            cost=total.cost,
            daily_minutes=daily.minutes,
            daily_cost=daily.cost,
            unit_price=resolve_current_tier_unit_price(
                pricing.tiered_prices, daily.minutes, pricing.model_unit_price
            ),
            unit_label=pricing.model_unit_label,
        )

    def get_usage(self, tenant: object) -> UsageTotal:
        """Cumulative usage; zeros for unknown or missing tenants."""
        total = self._usage.get(normalize_tenant_id(tenant))
        return total.model_copy() if total is not None else UsageTotal()

    def get_daily_usage(self, tenant: object, date: Optional[str] = None) -> DailyUsageTotal:
        """Usage on ``date`` (``YYYY-MM-DD``, default today in UTC)."""
        date_key = date or utc_date_key(self._clock())
        record = self._daily.get(normalize_tenant_id(tenant), {}).get(date_key)
        if record is None:
            return DailyUsageTotal(date=date_key)
        return DailyUsageTotal(date=date_key, minutes=record.minutes, cost=record.cost)

    def get_usage_summary(self, tenant: object) -> Optional[UsageSummary]:
        """Cumulative and same-day usage plus the price of the next minute.

        Returns ``None`` when there is no tenant.
        """
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return None

        pricing = self.get_pricing(base_id)
        usage = self.get_usage(base_id)
        daily = self.get_daily_usage(base_id)
        return UsageSummary(
            base_id=base_id,
            count=usage.count,
            minutes=usage.minutes,
            cost=usage.cost,
            daily_minutes=daily.minutes,
            daily_cost=daily.cost,
            unit_price=resolve_current_tier_unit_price(
                pricing.tiered_prices, daily.minutes, pricing.model_unit_price
            ),
            unit_label=pricing.model_unit_label,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _date_key(self, occurred_at: Any) -> str:
        """UTC day of ``occurred_at``; now when it is missing or not a usable timestamp."""
        if isinstance(occurred_at, (int, float)) and not isinstance(occurred_at, bool):
            try:
                return utc_date_key(occurred_at)
            except (OverflowError, ValueError, OSError):
                logger.debug("Ignoring out-of-range occurred_at %r", occurred_at)
        return utc_date_key(self._clock())

    def _persist(self) -> None:
        if self._sink is None:
            return
        self._sink.persist(
            SnapshotUpdate(
                pricing_by_base_id=dict(self._pricing),
                usage_by_base_id=dict(self._usage),
                daily_usage_by_base_id={key: dict(by_date) for key, by_date in self._daily.items()},
            )
        )
