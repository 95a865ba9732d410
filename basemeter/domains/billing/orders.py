"""Order book: checkout and payment finalization.

Orders are transient. A checkout creates a pending order and a payment URL;
a payment notification finalizes it by extending the tenant's paid period.
Payment gateway signature checks happen before anything reaches this module.
"""

import logging
import uuid
from typing import Callable, Dict, Optional, Sequence
from urllib.parse import quote

from basemeter.core.clock import Clock, now_ms
from basemeter.core.shared_models import FailureKind, OrderStatus
from basemeter.core.tenants import normalize_tenant_id
from basemeter.domains.billing.plans import format_price, resolve_plan
from basemeter.domains.billing.protocols import BillingLedgerProtocol
from basemeter.domains.billing.types import (
    DEFAULT_PLANS,
    MSG_ACTIVATION_FAILED,
    MSG_INVALID_PLAN,
    MSG_MISSING_TENANT,
    MSG_ORDER_ALREADY_PAID,
    MSG_ORDER_NOT_FOUND,
)
from basemeter.domains.subscriptions.protocols import SubscriptionLedgerProtocol
from basemeter.schemas.billing import BillingPlan, CheckoutResult, Order, OrderResult

logger = logging.getLogger(__name__)


def build_payment_url(template: str, order: Order) -> str:
    """Fill ``{orderId}``, ``{baseId}``, ``{planId}`` and ``{price}`` in ``template``."""
    if not template:
        return ""
    replacements = {
        "{orderId}": order.order_id,
        "{baseId}": order.base_id,
        "{planId}": order.plan_id,
        "{price}": format_price(order.price),
    }
    url = template
    for placeholder, value in replacements.items():
        url = url.replace(placeholder, quote(value, safe=""))
    return url


class OrderBook:
    """In-memory orders keyed by order id."""

    def __init__(
        self,
        subscriptions: SubscriptionLedgerProtocol,
        billing: BillingLedgerProtocol,
        payment_url_template: str = "",
        plans: Sequence[BillingPlan] = DEFAULT_PLANS,
        clock: Clock = now_ms,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._subscriptions = subscriptions
        self._billing = billing
        self._payment_url_template = payment_url_template
        self._plans = tuple(plans)
        self._clock = clock
        self._id_factory = id_factory
        self._orders: Dict[str, Order] = {}

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def checkout(self, tenant: object, plan_id: object) -> CheckoutResult:
        """Open a pending order for ``plan_id`` at the tenant's price."""
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return CheckoutResult(
                ok=False, message=MSG_MISSING_TENANT, failure=FailureKind.INVALID_INPUT
            )

        plan = resolve_plan(plan_id, self._billing.get_pricing(base_id), self._plans)
        if plan is None:
            return CheckoutResult(ok=False, message=MSG_INVALID_PLAN, failure=FailureKind.INVALID_INPUT)

        order = Order(
            order_id=self._id_factory(),
            base_id=base_id,
            plan_id=plan.id,
            price=plan.price,
            created_at=self._clock(),
        )
        self._orders[order.order_id] = order
        logger.info("Order %s opened for %s (%s at %s)", order.order_id, base_id, plan.id, order.price)
        return CheckoutResult(
            ok=True,
            order_id=order.order_id,
            pay_url=build_payment_url(self._payment_url_template, order),
        )

    def finalize_paid_order(self, order_id: str, paid_at: Optional[int] = None) -> OrderResult:
        """Activate the order's plan and mark it paid.

        Finalizing an order that is already paid is a conflict and does not
        extend the paid period again.
        """
        order = self._orders.get(order_id)
        if order is None:
            return OrderResult(ok=False, message=MSG_ORDER_NOT_FOUND, failure=FailureKind.NOT_FOUND)
        if order.status == OrderStatus.PAID:
            return OrderResult(
                ok=False,
                order_id=order_id,
                status=order.status,
                paid_until=order.paid_until,
                message=MSG_ORDER_ALREADY_PAID,
                failure=FailureKind.CONFLICT,
            )

        plan = next((p for p in self._plans if p.id == order.plan_id), None)
        if plan is None:
            return OrderResult(
                ok=False, order_id=order_id, message=MSG_INVALID_PLAN, failure=FailureKind.INVALID_INPUT
            )

        paid_at = paid_at or self._clock()
        paid_until = self._subscriptions.activate_plan(order.base_id, plan.duration_ms, paid_at=paid_at)
        if paid_until is None:
            return OrderResult(
                ok=False, order_id=order_id, message=MSG_ACTIVATION_FAILED, failure=FailureKind.INVALID_INPUT
            )

        order.status = OrderStatus.PAID
        order.paid_at = paid_at
        order.paid_until = paid_until
        logger.info("Order %s paid, %s active until %d", order_id, order.base_id, paid_until)
        return OrderResult(ok=True, order_id=order_id, status=order.status, paid_until=paid_until)

    def mark_status(self, order_id: str, status: OrderStatus) -> OrderResult:
        """Record a gateway outcome. ``PAID`` goes through ``finalize_paid_order``."""
        if status == OrderStatus.PAID:
            return self.finalize_paid_order(order_id)

        order = self._orders.get(order_id)
        if order is None:
            return OrderResult(ok=False, message=MSG_ORDER_NOT_FOUND, failure=FailureKind.NOT_FOUND)
        if order.status == OrderStatus.PAID:
            return OrderResult(
                ok=False,
                order_id=order_id,
                status=order.status,
                paid_until=order.paid_until,
                message=MSG_ORDER_ALREADY_PAID,
                failure=FailureKind.CONFLICT,
            )

        order.status = status
        logger.info("Order %s marked %s", order_id, status.value)
        return OrderResult(ok=True, order_id=order_id, status=status)
