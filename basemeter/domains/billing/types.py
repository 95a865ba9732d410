"""Billing domain constants."""

from basemeter.core.clock import DAY_MS
from basemeter.schemas.billing import BillingPlan

USAGE_NOTE_TIERED = "usage billed by tiered rate"
USAGE_NOTE_SEPARATE = "usage billed separately"

MSG_MISSING_TENANT = "missing baseId"
MSG_INVALID_PLAN = "invalid planId"
MSG_ORDER_NOT_FOUND = "order not found"
MSG_ORDER_ALREADY_PAID = "order already paid"
MSG_ACTIVATION_FAILED = "plan activation failed"

DEFAULT_PLANS = (
    BillingPlan(id="monthly", label="Monthly", price=9.9, duration_ms=30 * DAY_MS, usage_note=USAGE_NOTE_SEPARATE),
    BillingPlan(id="quarterly", label="Quarterly", price=19.9, duration_ms=90 * DAY_MS, usage_note=USAGE_NOTE_SEPARATE),
    BillingPlan(id="halfyear", label="Half-year", price=49.9, duration_ms=180 * DAY_MS, usage_note=USAGE_NOTE_SEPARATE),
)
