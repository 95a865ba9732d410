"""Billing domain: pricing lookups, metered usage, plans and orders."""

from basemeter.domains.billing.ledger import BillingLedger
from basemeter.domains.billing.orders import OrderBook, build_payment_url
from basemeter.domains.billing.plans import format_usage_note, list_plans, resolve_plan
from basemeter.domains.billing.protocols import BillingLedgerProtocol
from basemeter.domains.billing.tiers import (
    calculate_tiered_cost,
    resolve_current_tier_unit_price,
    resolve_minutes,
)
from basemeter.domains.billing.types import DEFAULT_PLANS

__all__ = [
    "BillingLedger",
    "BillingLedgerProtocol",
    "DEFAULT_PLANS",
    "OrderBook",
    "build_payment_url",
    "calculate_tiered_cost",
    "format_usage_note",
    "list_plans",
    "resolve_current_tier_unit_price",
    "resolve_minutes",
    "resolve_plan",
]
