"""Plan catalog with per-tenant price overrides."""

from typing import List, Optional, Sequence

from basemeter.domains.billing.types import DEFAULT_PLANS, USAGE_NOTE_SEPARATE, USAGE_NOTE_TIERED
from basemeter.schemas.billing import BillingPlan
from basemeter.schemas.pricing import PricingProfile


def format_price(price: float) -> str:
    """Render a price without a trailing ``.0`` for whole amounts."""
    return str(int(price)) if float(price).is_integer() else str(price)


def format_usage_note(pricing: PricingProfile) -> str:
    """One-line description of how metered usage is charged on top of a plan."""
    if pricing.tiered_prices:
        return USAGE_NOTE_TIERED
    if pricing.model_unit_price <= 0:
        return USAGE_NOTE_SEPARATE
    return f"usage billed at {format_price(pricing.model_unit_price)}/{pricing.model_unit_label}"


def _apply_pricing(plan: BillingPlan, pricing: PricingProfile) -> BillingPlan:
    price = pricing.plan_price_by_id.get(plan.id, plan.price)
    return plan.model_copy(update={"price": price, "usage_note": format_usage_note(pricing)})


def resolve_plan(
    plan_id: object,
    pricing: PricingProfile,
    plans: Sequence[BillingPlan] = DEFAULT_PLANS,
) -> Optional[BillingPlan]:
    """The plan with ``plan_id`` as this tenant sees it, or ``None``."""
    for plan in plans:
        if plan.id == plan_id:
            return _apply_pricing(plan, pricing)
    return None


def list_plans(
    pricing: PricingProfile,
    plans: Sequence[BillingPlan] = DEFAULT_PLANS,
) -> List[BillingPlan]:
    """Every plan with the tenant's overrides applied."""
    return [_apply_pricing(plan, pricing) for plan in plans]
