"""Plan catalog and order schemas."""

from typing import Optional

from pydantic import Field

from basemeter.core.shared_models import FailureKind, OrderStatus
from basemeter.schemas.base import CamelModel


class BillingPlan(CamelModel):
    """A purchasable paid period."""

    id: str
    label: str
    price: float = Field(..., ge=0)
    duration_ms: int = Field(..., gt=0)
    usage_note: str = ""


class Order(CamelModel):
    """A checkout awaiting (or past) payment. Orders live in memory only."""

    order_id: str
    base_id: str
    plan_id: str
    price: float
    status: OrderStatus = OrderStatus.PENDING
    created_at: int
    paid_at: Optional[int] = None
    paid_until: Optional[int] = None


class CheckoutResult(CamelModel):
    """Outcome of starting a checkout."""

    ok: bool
    order_id: Optional[str] = None
    pay_url: str = ""
    message: Optional[str] = None
    failure: Optional[FailureKind] = None


class OrderResult(CamelModel):
    """Outcome of a payment notification or status change."""

    ok: bool
    order_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    paid_until: Optional[int] = None
    message: Optional[str] = None
    failure: Optional[FailureKind] = None
