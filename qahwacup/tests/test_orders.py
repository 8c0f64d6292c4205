"""Tests for checkout and the order status lifecycle."""

from decimal import Decimal
from itertools import product
from unittest.mock import patch

import pytest

from qahwacup.exceptions import (
    InvalidTransition,
    NoFreeCupsAvailable,
    NotFound,
    OrderFinalized,
    ValidationError,
)
from qahwacup.models import (
    VALID_TRANSITIONS,
    Order,
    OrderStatus,
    OrderStatusChange,
    TERMINAL_STATUSES,
)
from qahwacup.services.ledger import LoyaltyLedger
from qahwacup.services.orders import OrderLine, OrderService, normalize_status
from qahwacup.signals import order_created, order_status_changed


pytestmark = pytest.mark.django_db


ALLOWED = {
    ("pending", "in_progress"),
    ("pending", "cancelled"),
    ("in_progress", "ready"),
    ("in_progress", "out_for_delivery"),
    ("in_progress", "cancelled"),
    ("ready", "completed"),
    ("out_for_delivery", "completed"),
}


def _complete(order, fulfillment_step=OrderStatus.READY):
    OrderService.start_preparation(order)
    OrderService.transition(order, fulfillment_step)
    return OrderService.complete(order)


# ═══════════════════════════════════════════════════════════════════
# Order lines
# ═══════════════════════════════════════════════════════════════════


class TestOrderLine:
    def test_canonical_keys(self):
        line = OrderLine.from_payload(
            {"coffee_item_id": "latte", "name": "Latte", "unit_price": "15", "quantity": 2}
        )
        assert line == OrderLine("latte", "Latte", Decimal("15.00"), 2)
        assert line.line_total == Decimal("30.00")

    def test_client_key_variants(self):
        line = OrderLine.from_payload(
            {"coffeeItemId": 7, "nameEn": "Mocha", "unitPrice": Decimal("10.5"), "quantity": 1}
        )
        assert line.coffee_item_id == "7"
        assert line.name == "Mocha"
        assert line.unit_price == Decimal("10.50")

    def test_price_alias(self):
        line = OrderLine.from_payload({"id": "v60", "nameAr": "في ستي", "price": "18.00", "quantity": 1})
        assert line.coffee_item_id == "v60"
        assert line.name == "في ستي"

    @pytest.mark.parametrize(
        "payload",
        [
            "latte",
            {"name": "Latte", "unit_price": "15.00", "quantity": 1},
            {"id": "latte", "quantity": 1},
            {"id": "latte", "price": "15.00", "quantity": 0},
            {"id": "latte", "price": "15.00", "quantity": "2"},
            {"id": "latte", "price": "15.00", "quantity": True},
            {"id": "latte", "price": "-1.00", "quantity": 1},
        ],
    )
    def test_invalid_payloads(self, payload):
        with pytest.raises(ValidationError):
            OrderLine.from_payload(payload)

    def test_float_price_refused(self):
        with pytest.raises(ValidationError) as exc_info:
            OrderLine.from_payload({"id": "latte", "price": 15.0, "quantity": 1})
        assert exc_info.value.code == "INVALID_AMOUNT"


# ═══════════════════════════════════════════════════════════════════
# Checkout
# ═══════════════════════════════════════════════════════════════════


class TestCheckout:
    def test_creates_pending_order(self, order):
        assert order.status == OrderStatus.PENDING
        assert order.order_number == "O-1"
        assert order.subtotal == Decimal("42.00")
        assert order.total_amount == Decimal("42.00")
        assert order.items.count() == 2
        assert order.items_count == 3
        assert order.fulfillment_type == "pickup"
        assert order.loyalty_account is None

    def test_generates_order_number(self, items):
        order = OrderService.checkout(items, "stc")
        assert order.order_number.startswith("ORD-")

    def test_customer_info_from_card(self, account, items):
        order = OrderService.checkout(items, "cash", loyalty_account=account)
        assert order.customer_name == "Ali"
        assert order.customer_phone == "0500000000"

    def test_customer_phone_normalized(self, items):
        order = OrderService.checkout(items, "cash", customer_phone="+966551234567")
        assert order.customer_phone == "0551234567"

    def test_fulfillment_alias(self, items):
        order = OrderService.checkout(items, "cash", fulfillment_type="dine-in")
        assert order.fulfillment_type == "dine_in"

    def test_invalid_fulfillment(self, items):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout(items, "cash", fulfillment_type="drone")
        assert exc_info.value.code == "INVALID_FULFILLMENT_TYPE"

    def test_empty_items(self, db):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout([], "cash")
        assert exc_info.value.code == "INVALID_ITEMS"

    def test_invalid_payment_method(self, items):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout(items, "bitcoin")
        assert exc_info.value.code == "INVALID_PAYMENT_METHOD"

    def test_card_payment_requires_card(self, items):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout(items, "qahwa-card")
        assert exc_info.value.code == "LOYALTY_CARD_REQUIRED"

    def test_unknown_card(self, items):
        with pytest.raises(NotFound):
            OrderService.checkout(items, "cash", loyalty_account="00000000-0000-0000-0000-000000000000")

    def test_declared_total_verified(self, items):
        order = OrderService.checkout(items, "cash", total_amount="42.00")
        assert order.total_amount == Decimal("42.00")

    def test_total_mismatch_creates_nothing(self, items):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout(items, "cash", total_amount=Decimal("40.00"))

        assert exc_info.value.code == "TOTAL_MISMATCH"
        assert exc_info.value.data["computed"] == "42.00"
        assert Order.objects.count() == 0

    def test_order_created_signal(self, items):
        received = []

        def handler(sender, order, **kwargs):
            received.append(order.order_number)

        order_created.connect(handler)
        try:
            OrderService.checkout(items, "cash", order_number="O-SIG")
        finally:
            order_created.disconnect(handler)

        assert received == ["O-SIG"]


class TestCheckoutRewards:
    def test_free_item(self, make_account, items):
        account = make_account(stamps=6)

        order = OrderService.checkout(items, "cash", loyalty_account=account, free_item_id="latte")

        assert order.free_item_applied is True
        assert order.free_item_amount == Decimal("15.00")
        assert order.total_amount == Decimal("27.00")
        account.refresh_from_db()
        assert account.free_cups_redeemed == 1

    def test_free_item_without_cups_creates_nothing(self, account, items):
        with pytest.raises(NoFreeCupsAvailable):
            OrderService.checkout(items, "cash", loyalty_account=account, free_item_id="latte")
        assert Order.objects.count() == 0

    def test_free_item_requires_card(self, items):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout(items, "cash", free_item_id="latte")
        assert exc_info.value.code == "LOYALTY_CARD_REQUIRED"

    def test_free_item_must_be_in_order(self, make_account, items):
        account = make_account(stamps=6)
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout(items, "cash", loyalty_account=account, free_item_id="espresso")
        assert exc_info.value.code == "INVALID_ITEMS"
        account.refresh_from_db()
        assert account.free_cups_redeemed == 0

    def test_discount(self, make_account, items):
        account = make_account(stamps=5)

        order = OrderService.checkout(items, "cash", loyalty_account=account, apply_discount=True)

        assert order.discount_applied is True
        assert order.discount_amount == Decimal("4.20")
        assert order.total_amount == Decimal("37.80")

    def test_discount_not_available(self, account, items):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.checkout(items, "cash", loyalty_account=account, apply_discount=True)
        assert exc_info.value.code == "DISCOUNT_NOT_AVAILABLE"

    def test_free_item_then_discount(self, make_account, items):
        account = make_account(stamps=11)

        order = OrderService.checkout(
            items,
            "qahwa-card",
            loyalty_account=account,
            free_item_id="latte",
            apply_discount=True,
            total_amount="24.30",
        )

        assert order.free_item_amount == Decimal("15.00")
        assert order.discount_amount == Decimal("2.70")
        assert order.total_amount == Decimal("24.30")
        assert order.total_amount == order.subtotal - order.discount_amount - order.free_item_amount

    def test_discount_applied_once(self, make_account, items):
        account = make_account(stamps=5)
        order = OrderService.checkout(items, "cash", loyalty_account=account, apply_discount=True)

        with pytest.raises(ValidationError) as exc_info:
            OrderService.apply_discount(order)
        assert exc_info.value.code == "REWARD_ALREADY_APPLIED"

    def test_free_item_applied_once(self, make_account, items):
        account = make_account(stamps=12)
        order = OrderService.checkout(items, "cash", loyalty_account=account, free_item_id="latte")

        with pytest.raises(ValidationError) as exc_info:
            OrderService.apply_free_item(order, "croissant")

        assert exc_info.value.code == "REWARD_ALREADY_APPLIED"
        account.refresh_from_db()
        assert account.free_cups_redeemed == 1

    def test_rewards_on_open_order(self, make_account, items):
        account = make_account(stamps=11)
        order = OrderService.checkout(items, "cash", loyalty_account=account)

        order = OrderService.apply_free_item(order, "croissant", changed_by="cashier1")
        order = OrderService.apply_discount(order, changed_by="cashier1")

        assert order.free_item_amount == Decimal("12.00")
        assert order.discount_amount == Decimal("3.00")
        assert order.total_amount == Decimal("27.00")

    def test_rewards_rejected_on_finalized_order(self, make_account, items):
        account = make_account(stamps=6)
        order = OrderService.checkout(items, "cash", loyalty_account=account)
        OrderService.cancel(order, reason="changed mind", cancelled_by="customer")

        with pytest.raises(OrderFinalized):
            OrderService.apply_free_item(order, "latte")
        account.refresh_from_db()
        assert account.free_cups_redeemed == 0


# ═══════════════════════════════════════════════════════════════════
# Status transitions
# ═══════════════════════════════════════════════════════════════════


class TestTransitionTable:
    @pytest.mark.parametrize("current,target", list(product(OrderStatus.values, repeat=2)))
    def test_all_pairs(self, current, target):
        assert (target in VALID_TRANSITIONS[current]) is ((current, target) in ALLOWED)

    def test_terminal_statuses_are_sinks(self):
        for status in TERMINAL_STATUSES:
            assert VALID_TRANSITIONS[status] == set()

    def test_no_cycles(self):
        def reachable(status, seen):
            for nxt in VALID_TRANSITIONS[status]:
                assert nxt not in seen, f"cycle through {nxt}"
                reachable(nxt, seen | {nxt})

        for status in OrderStatus.values:
            reachable(status, {status})

    @pytest.mark.parametrize("alias", ["confirmed", "payment_confirmed", "preparing", "PREPARING "])
    def test_aliases(self, alias):
        assert normalize_status(alias) == OrderStatus.IN_PROGRESS

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_status("teleported")
        assert exc_info.value.code == "INVALID_STATUS"


class TestTransitions:
    def test_pickup_lifecycle(self, order):
        OrderService.start_preparation(order, changed_by="barista")
        OrderService.mark_ready(order, changed_by="barista")
        order = OrderService.complete(order, changed_by="cashier1")

        assert order.status == OrderStatus.COMPLETED
        history = list(OrderStatusChange.objects.filter(order=order).values_list("from_status", "to_status"))
        assert history == [
            ("pending", "in_progress"),
            ("in_progress", "ready"),
            ("ready", "completed"),
        ]

    def test_completed_cannot_go_back(self, order):
        order = _complete(order)

        with pytest.raises(InvalidTransition) as exc_info:
            OrderService.transition(order, "in_progress")

        assert exc_info.value.data["current_status"] == "completed"
        assert "completed" in exc_info.value.message
        order.refresh_from_db()
        assert order.status == OrderStatus.COMPLETED

    @pytest.mark.parametrize("target", OrderStatus.values)
    def test_from_pending(self, order, target):
        if ("pending", target) in ALLOWED:
            assert OrderService.transition(order, target).status == target
        else:
            with pytest.raises(InvalidTransition) as exc_info:
                OrderService.transition(order, target)
            assert exc_info.value.data["current_status"] == "pending"
            order.refresh_from_db()
            assert order.status == OrderStatus.PENDING

    def test_alias_transition(self, order):
        order = OrderService.transition(order, "confirmed")
        assert order.status == OrderStatus.IN_PROGRESS

    def test_delivery_lifecycle(self, items):
        order = OrderService.checkout(items, "cash", fulfillment_type="delivery")
        OrderService.start_preparation(order)

        with pytest.raises(InvalidTransition):
            OrderService.mark_ready(order)

        OrderService.dispatch(order)
        order = OrderService.complete(order)
        assert order.status == OrderStatus.COMPLETED

    def test_pickup_cannot_be_dispatched(self, order):
        OrderService.start_preparation(order)
        with pytest.raises(InvalidTransition):
            OrderService.dispatch(order)

    def test_cancel(self, order):
        order = OrderService.cancel(order, reason="out of milk", cancelled_by="cashier")

        assert order.status == OrderStatus.CANCELLED
        assert order.cancellation_reason == "out of milk"
        assert order.cancelled_by == "cashier"

        with pytest.raises(InvalidTransition):
            OrderService.start_preparation(order)

    def test_cancel_defaults_to_cashier(self, order):
        order = OrderService.transition(order, "cancelled")
        assert order.cancelled_by == "cashier"

    @pytest.mark.parametrize("cancelled_by", ["robot", "a-very-long-robot-name-over-20", "Customer"])
    def test_cancel_rejects_unknown_source(self, order, cancelled_by):
        with pytest.raises(ValidationError) as exc_info:
            OrderService.cancel(order, cancelled_by=cancelled_by)

        assert exc_info.value.code == "INVALID_CANCELLED_BY"
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert not order.status_changes.exists()

    def test_ready_orders_cannot_be_cancelled(self, order):
        OrderService.start_preparation(order)
        OrderService.mark_ready(order)
        with pytest.raises(InvalidTransition):
            OrderService.cancel(order)

    def test_unknown_order(self, db):
        with pytest.raises(NotFound) as exc_info:
            OrderService.transition("00000000-0000-0000-0000-000000000000", "in_progress")
        assert exc_info.value.code == "ORDER_NOT_FOUND"

    def test_status_changed_signal(self, order):
        received = []

        def handler(sender, order, from_status, to_status, **kwargs):
            received.append((from_status, to_status))

        order_status_changed.connect(handler)
        try:
            OrderService.start_preparation(order)
        finally:
            order_status_changed.disconnect(handler)

        assert received == [("pending", "in_progress")]


# ═══════════════════════════════════════════════════════════════════
# Loyalty credit on completion
# ═══════════════════════════════════════════════════════════════════


class TestLoyaltyCredit:
    def test_completion_credits_card_once(self, card_order, account):
        order = _complete(card_order)

        account.refresh_from_db()
        assert order.loyalty_credited is True
        assert account.stamps == 1
        assert account.total_spent == Decimal("42.00")

        assert OrderService.retry_loyalty_credit(order) is True
        account.refresh_from_db()
        assert account.stamps == 1

    def test_credit_uses_amount_paid(self, make_account, items):
        account = make_account(stamps=5)
        order = OrderService.checkout(items, "cash", loyalty_account=account, apply_discount=True)

        _complete(order)

        account.refresh_from_db()
        assert account.stamps == 6
        assert account.total_spent == Decimal("37.80")
        assert account.discount_count == 1
        assert account.free_cups_earned == 1

    def test_order_without_card_skips_ledger(self, order):
        with patch.object(LoyaltyLedger, "record_completed_purchase") as credit:
            order = _complete(order)

        credit.assert_not_called()
        assert order.status == OrderStatus.COMPLETED
        assert order.loyalty_credited is False

    def test_cancelled_order_not_credited(self, card_order, account):
        OrderService.cancel(card_order)
        account.refresh_from_db()
        assert account.stamps == 0

    def test_credit_failure_keeps_completion(self, card_order, account, caplog):
        with patch.object(LoyaltyLedger, "record_completed_purchase", side_effect=RuntimeError("db down")):
            order = _complete(card_order)

        order.refresh_from_db()
        assert order.status == OrderStatus.COMPLETED
        assert order.loyalty_credited is False
        assert "Loyalty credit failed" in caplog.text
        account.refresh_from_db()
        assert account.stamps == 0

        assert OrderService.retry_loyalty_credit(order) is True
        order.refresh_from_db()
        account.refresh_from_db()
        assert order.loyalty_credited is True
        assert account.stamps == 1

    def test_retry_requires_completed_order(self, card_order):
        with pytest.raises(ValidationError):
            OrderService.retry_loyalty_credit(card_order)


# ═══════════════════════════════════════════════════════════════════
# Notifications
# ═══════════════════════════════════════════════════════════════════


class TestNotifications:
    def test_notified_on_ready_and_completed(self, order):
        with patch("qahwacup.services.notifications.notify") as notify:
            OrderService.start_preparation(order)
            notify.assert_not_called()

            OrderService.mark_ready(order)
            OrderService.complete(order)

        assert notify.call_count == 2
        assert [call.args[0].status for call in notify.call_args_list] == ["ready", "completed"]

    def test_notifier_failure_does_not_block_transition(self, order, caplog):
        OrderService.start_preparation(order)

        with patch("qahwacup.services.notifications.get_notifier") as get_notifier:
            get_notifier.return_value.notify.side_effect = RuntimeError("smtp down")
            order = OrderService.mark_ready(order)

        assert order.status == OrderStatus.READY
        order.refresh_from_db()
        assert order.status == OrderStatus.READY
        assert "Notification failed" in caplog.text

    def test_notify_statuses_configurable(self, order, settings):
        settings.QAHWACUP = {"NOTIFY_ON_STATUSES": ("in_progress",)}

        with patch("qahwacup.services.notifications.notify") as notify:
            OrderService.start_preparation(order)
            OrderService.mark_ready(order)

        notify.assert_called_once()


class TestQueries:
    def test_get_by_number(self, order):
        assert OrderService.get_by_number("O-1") == order

    def test_get_by_unknown_number(self, db):
        with pytest.raises(NotFound):
            OrderService.get_by_number("O-404")

    def test_list_active(self, order, card_order):
        OrderService.cancel(card_order)
        assert OrderService.list_active() == [order]
