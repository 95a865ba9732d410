"""PricingProfile resolver.

Per-tenant overrides arrive from admins as loosely shaped JSON: boundaries may
be given in minutes, hours or a bare ``upTo``; prices per minute or per hour;
entries may be missing or junk. Everything is funnelled into one canonical
``PricingProfile`` here so the billing ledger only ever sees clean tiers.
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel

from basemeter.schemas.pricing import PricingProfile, PricingTier

RawPricing = Union[PricingProfile, Mapping[str, Any], None]


def _as_finite(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` if it is not one."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    """First value present under any of ``keys`` (camelCase or snake_case)."""
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _to_mapping(raw: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(raw, BaseModel):
        return raw.model_dump(by_alias=True)
    if isinstance(raw, Mapping):
        return raw
    return None


def coerce_unit_price(value: Any) -> Optional[float]:
    """A usable unit price: finite and non-negative, else ``None``."""
    number = _as_finite(value)
    if number is None or number < 0:
        return None
    return number


def normalize_tiered_prices(tiers: Any, fallback_price: float) -> List[PricingTier]:
    """Canonicalize a raw tier list.

    Boundary: ``upToMinutes``, then ``upToHours * 60``, then ``upTo``, else
    unbounded. Price: ``unitPrice``, then ``unitPricePerMinute``, then
    ``unitPricePerHour / 60``, else ``fallback_price``. Entries that are not
    objects or end up with a negative price are dropped. The result is sorted
    ascending with unbounded tiers last.
    """
    if not isinstance(tiers, (list, tuple)):
        return []

    normalized: List[PricingTier] = []
    for item in tiers:
        raw = _to_mapping(item)
        if raw is None:
            continue

        up_to = _as_finite(_pick(raw, "upToMinutes", "up_to_minutes"))
        if up_to is None:
            hours = _as_finite(_pick(raw, "upToHours", "up_to_hours"))
            up_to = hours * 60 if hours is not None else _as_finite(_pick(raw, "upTo", "up_to"))
        if up_to is None:
            up_to = math.inf

        price = _as_finite(_pick(raw, "unitPrice", "unit_price"))
        if price is None:
            price = _as_finite(_pick(raw, "unitPricePerMinute", "unit_price_per_minute"))
        if price is None:
            per_hour = _as_finite(_pick(raw, "unitPricePerHour", "unit_price_per_hour"))
            price = per_hour / 60 if per_hour is not None else _as_finite(fallback_price)
        if price is None or price < 0:
            continue

        normalized.append(PricingTier(up_to_minutes=up_to, unit_price=price))

    return sorted(normalized, key=lambda tier: tier.up_to_minutes)


def normalize_pricing(raw: RawPricing, default: PricingProfile) -> PricingProfile:
    """Resolve a tenant override over the installation ``default``.

    Missing or invalid fields fall back to the default; tiers fall back to the
    default tiers only when the override has no tier list at all.
    """
    override = _to_mapping(raw) or {}

    unit_price = coerce_unit_price(_pick(override, "modelUnitPrice", "model_unit_price"))
    if unit_price is None:
        unit_price = default.model_unit_price

    label = _pick(override, "modelUnitLabel", "model_unit_label")
    if not isinstance(label, str) or not label:
        label = default.model_unit_label

    plan_prices = _pick(override, "planPriceById", "plan_price_by_id")
    if isinstance(plan_prices, Mapping):
        plan_price_by_id = _normalize_plan_prices(plan_prices)
    else:
        plan_price_by_id = dict(default.plan_price_by_id)

    tiers = _pick(override, "tieredPrices", "tiered_prices")
    if tiers is None:
        tiers = default.tiered_prices

    return PricingProfile(
        plan_price_by_id=plan_price_by_id,
        model_unit_price=unit_price,
        model_unit_label=label,
        tiered_prices=normalize_tiered_prices(tiers, unit_price),
    )


def _normalize_plan_prices(raw: Mapping[str, Any]) -> Dict[str, float]:
    prices: Dict[str, float] = {}
    for plan_id, value in raw.items():
        price = coerce_unit_price(value)
        if isinstance(plan_id, str) and plan_id and price is not None:
            prices[plan_id] = price
    return prices


def build_default_pricing(
    unit_price: float,
    unit_label: str,
    tiered_prices: Optional[Iterable[Any]] = None,
) -> PricingProfile:
    """Installation-wide default schedule, built once from settings."""
    price = coerce_unit_price(unit_price)
    if price is None:
        raise ValueError(f"Default unit price must be a finite non-negative number, got {unit_price!r}")
    return PricingProfile(
        plan_price_by_id={},
        model_unit_price=price,
        model_unit_label=unit_label,
        tiered_prices=normalize_tiered_prices(list(tiered_prices or []), price),
    )
