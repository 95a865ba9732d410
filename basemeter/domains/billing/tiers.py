"""Tiered cost arithmetic.

Pure functions shared by the billing ledger and the usage summary. Tiers are
expected in the canonical form produced by the pricing resolver: ascending by
``up_to_minutes`` with unbounded tiers last.
"""

import math
from typing import Any, Optional, Sequence

from basemeter.schemas.pricing import PricingTier

MS_PER_MINUTE = 60_000
MONEY_DECIMALS = 4


def _positive(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def resolve_minutes(
    minutes: Any = None,
    duration_ms: Any = None,
    units: Any = None,
) -> float:
    """Billable quantity for one unit of work.

    Positive ``minutes`` win; otherwise ``duration_ms`` rounded up to whole
    minutes (at least one); otherwise positive ``units``; otherwise 1.
    """
    explicit = _positive(minutes)
    if explicit is not None:
        return explicit
    duration = _positive(duration_ms)
    if duration is not None:
        return float(max(1, math.ceil(duration / MS_PER_MINUTE)))
    count = _positive(units)
    if count is not None:
        return count
    return 1.0


def round_money(value: float) -> float:
    return round(value, MONEY_DECIMALS)


def calculate_tiered_cost(
    tiers: Sequence[PricingTier],
    prev_minutes: float,
    add_minutes: float,
    fallback_unit_price: float,
) -> float:
    """Cost of adding ``add_minutes`` on top of ``prev_minutes`` already used today.

    The added quantity is split across tier boundaries: each tier bills only
    the minutes between the running cursor and its boundary. Anything left
    after the last bounded tier is billed at ``fallback_unit_price``.
    """
    if not tiers:
        return add_minutes * fallback_unit_price

    remaining = add_minutes
    cost = 0.0
    cursor = prev_minutes
    for tier in tiers:
        if remaining <= 0:
            break
        if math.isinf(tier.up_to_minutes):
            available = remaining
        else:
            available = max(0.0, tier.up_to_minutes - cursor)
        if available <= 0:
            continue
        used = min(remaining, available)
        cost += used * tier.unit_price
        remaining -= used
        cursor += used

    if remaining > 0:
        cost += remaining * fallback_unit_price
    return cost


def resolve_current_tier_unit_price(
    tiers: Sequence[PricingTier],
    total_minutes: float,
    fallback_unit_price: float,
) -> float:
    """Unit price of the tier that ``total_minutes`` falls in."""
    if not tiers:
        return fallback_unit_price
    for tier in tiers:
        if total_minutes <= tier.up_to_minutes:
            return tier.unit_price
    return tiers[-1].unit_price or fallback_unit_price
