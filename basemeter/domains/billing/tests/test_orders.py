"""Unit tests for OrderBook: checkout, finalization and webhook status."""

import itertools

import pytest

from basemeter.core.clock import DAY_MS
from basemeter.core.fakes.clock import FakeClock
from basemeter.core.shared_models import FailureKind, OrderStatus
from basemeter.domains.billing.fakes.ledger import FakeBillingLedger
from basemeter.domains.billing.orders import OrderBook, build_payment_url
from basemeter.domains.subscriptions.ledger import SubscriptionLedger
from basemeter.schemas.billing import Order

TENANT = "base-1"
PAY_URL = "https://pay.example.com/checkout?order={orderId}&base={baseId}&plan={planId}&amount={price}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_book(payment_url_template: str = PAY_URL):
    """Build an OrderBook over a real subscription ledger and a fake billing ledger."""
    clock = FakeClock()
    subscriptions = SubscriptionLedger(trial_limit=0, clock=clock)
    billing = FakeBillingLedger()
    counter = itertools.count(1)
    book = OrderBook(
        subscriptions,
        billing,
        payment_url_template=payment_url_template,
        clock=clock,
        id_factory=lambda: f"order-{next(counter)}",
    )
    return book, subscriptions, billing, clock


# ---------------------------------------------------------------------------
# build_payment_url
# ---------------------------------------------------------------------------


class TestBuildPaymentUrl:
    def test_fills_placeholders(self):
        order = Order(order_id="o1", base_id="b 1", plan_id="monthly", price=9.9, created_at=0)

        url = build_payment_url(PAY_URL, order)

        assert url == "https://pay.example.com/checkout?order=o1&base=b%201&plan=monthly&amount=9.9"

    def test_empty_template(self):
        order = Order(order_id="o1", base_id="b1", plan_id="monthly", price=9.9, created_at=0)

        assert build_payment_url("", order) == ""


# ---------------------------------------------------------------------------
# checkout
# ---------------------------------------------------------------------------


class TestCheckout:
    def test_creates_pending_order(self):
        book, _, _, clock = _make_book()

        result = book.checkout(TENANT, "monthly")

        assert result.ok is True
        assert result.order_id == "order-1"
        assert result.pay_url.endswith("order=order-1&base=base-1&plan=monthly&amount=9.9")
        order = book.get("order-1")
        assert order.status == OrderStatus.PENDING
        assert order.price == 9.9
        assert order.created_at == clock.now_ms

    def test_uses_tenant_plan_price(self):
        book, _, billing, _ = _make_book()
        billing.pricing = billing.pricing.model_copy(update={"plan_price_by_id": {"monthly": 5.0}})

        result = book.checkout(TENANT, "monthly")

        assert book.get(result.order_id).price == 5.0
        assert result.pay_url.endswith("amount=5")

    def test_no_template_gives_empty_url(self):
        book, *_ = _make_book(payment_url_template="")

        assert book.checkout(TENANT, "monthly").pay_url == ""

    def test_missing_tenant(self):
        book, *_ = _make_book()

        result = book.checkout("  ", "monthly")

        assert result.ok is False
        assert result.failure == FailureKind.INVALID_INPUT
        assert result.message == "missing baseId"

    def test_unknown_plan(self):
        book, *_ = _make_book()

        result = book.checkout(TENANT, "lifetime")

        assert result.ok is False
        assert result.failure == FailureKind.INVALID_INPUT
        assert result.message == "invalid planId"


# ---------------------------------------------------------------------------
# finalize_paid_order
# ---------------------------------------------------------------------------


class TestFinalizePaidOrder:
    def test_activates_plan(self):
        book, subscriptions, _, clock = _make_book()
        order_id = book.checkout(TENANT, "monthly").order_id

        result = book.finalize_paid_order(order_id)

        assert result.ok is True
        assert result.paid_until == clock.now_ms + 30 * DAY_MS
        assert subscriptions.get_status(TENANT).is_paid is True
        order = book.get(order_id)
        assert order.status == OrderStatus.PAID
        assert order.paid_at == clock.now_ms
        assert order.paid_until == result.paid_until

    def test_uses_paid_at(self):
        book, _, _, clock = _make_book()
        order_id = book.checkout(TENANT, "quarterly").order_id
        paid_at = clock.now_ms + 10_000

        result = book.finalize_paid_order(order_id, paid_at=paid_at)

        assert result.paid_until == paid_at + 90 * DAY_MS

    def test_second_finalize_is_conflict(self):
        book, subscriptions, *_ = _make_book()
        order_id = book.checkout(TENANT, "monthly").order_id
        first = book.finalize_paid_order(order_id)

        second = book.finalize_paid_order(order_id)

        assert second.ok is False
        assert second.failure == FailureKind.CONFLICT
        assert second.paid_until == first.paid_until
        assert subscriptions.get_paid_until(TENANT) == first.paid_until

    def test_two_orders_stack(self):
        book, *_ = _make_book()
        first = book.finalize_paid_order(book.checkout(TENANT, "monthly").order_id)
        second = book.finalize_paid_order(book.checkout(TENANT, "monthly").order_id)

        assert second.paid_until - first.paid_until == 30 * DAY_MS

    def test_unknown_order(self):
        book, *_ = _make_book()

        result = book.finalize_paid_order("missing")

        assert result.ok is False
        assert result.failure == FailureKind.NOT_FOUND
        assert result.message == "order not found"


# ---------------------------------------------------------------------------
# mark_status
# ---------------------------------------------------------------------------


class TestMarkStatus:
    def test_failed_payment(self):
        book, subscriptions, *_ = _make_book()
        order_id = book.checkout(TENANT, "monthly").order_id

        result = book.mark_status(order_id, OrderStatus.FAILED)

        assert result.ok is True
        assert book.get(order_id).status == OrderStatus.FAILED
        assert subscriptions.get_paid_until(TENANT) == 0

    def test_paid_status_finalizes(self):
        book, subscriptions, *_ = _make_book()
        order_id = book.checkout(TENANT, "monthly").order_id

        result = book.mark_status(order_id, OrderStatus.PAID)

        assert result.ok is True
        assert subscriptions.get_paid_until(TENANT) == result.paid_until

    def test_paid_order_cannot_be_downgraded(self):
        book, *_ = _make_book()
        order_id = book.checkout(TENANT, "monthly").order_id
        book.finalize_paid_order(order_id)

        result = book.mark_status(order_id, OrderStatus.CLOSED)

        assert result.failure == FailureKind.CONFLICT
        assert book.get(order_id).status == OrderStatus.PAID

    @pytest.mark.parametrize("status", [OrderStatus.FAILED, OrderStatus.PAID])
    def test_unknown_order(self, status):
        book, *_ = _make_book()

        assert book.mark_status("missing", status).failure == FailureKind.NOT_FOUND
