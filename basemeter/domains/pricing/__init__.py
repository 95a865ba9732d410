"""Pricing domain: normalizes per-tenant price overrides."""

from basemeter.domains.pricing.resolver import (
    build_default_pricing,
    coerce_unit_price,
    normalize_pricing,
    normalize_tiered_prices,
)

__all__ = [
    "build_default_pricing",
    "coerce_unit_price",
    "normalize_pricing",
    "normalize_tiered_prices",
]
