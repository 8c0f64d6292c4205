"""Order service — checkout, rewards, and the order status lifecycle.

Status transitions:

    pending ──> in_progress ──> ready ────────────> completed
       │            │      └──> out_for_delivery ──┘
       └────────────┴──> cancelled

completed and cancelled are terminal. Reaching completed credits the
linked loyalty card (best-effort) and notifies the customer.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from qahwacup.exceptions import NotFound, ValidationError
from qahwacup.gates import Gates
from qahwacup.models import (
    FULFILLMENT_ALIASES,
    STATUS_ALIASES,
    TERMINAL_STATUSES,
    CancelledBy,
    FulfillmentType,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusChange,
    PaymentMethod,
)
from qahwacup.services import notifications
from qahwacup.services.ledger import LoyaltyLedger
from qahwacup.signals import order_created, order_status_changed
from qahwacup.utils import CENTS, generate_order_number, normalize_phone, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLine:
    """Canonical order line, normalized once at the checkout boundary."""

    coffee_item_id: str
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_payload(cls, data) -> "OrderLine":
        """
        Build a line from a client payload.

        Accepts the field variants sent by the different front-ends:
        coffeeItemId / coffee_item_id / id, unit_price / unitPrice / price,
        name / nameEn / nameAr.

        Raises:
            ValidationError: INVALID_ITEMS
        """
        if isinstance(data, OrderLine):
            return data
        if not isinstance(data, dict):
            raise ValidationError("INVALID_ITEMS", message="Order item must be an object")

        item_id = data.get("coffee_item_id") or data.get("coffeeItemId") or data.get("id")
        if not item_id:
            raise ValidationError("INVALID_ITEMS", message="Order item is missing its menu item id")

        price = _first_present(data, "unit_price", "unitPrice", "price")
        if price is None:
            raise ValidationError("INVALID_ITEMS", message=f"Item {item_id} has no price")
        unit_price = to_money(price)
        if unit_price < 0:
            raise ValidationError("INVALID_ITEMS", message=f"Item {item_id} has a negative price")

        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("INVALID_ITEMS", message=f"Item {item_id} needs a positive quantity")

        name = data.get("name") or data.get("nameEn") or data.get("nameAr") or ""
        return cls(
            coffee_item_id=str(item_id),
            name=str(name),
            unit_price=unit_price,
            quantity=quantity,
        )


def _first_present(data: dict, *keys):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def normalize_items(items) -> list[OrderLine]:
    """Normalize a list of item payloads. Raises ValidationError if empty."""
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("INVALID_ITEMS", message="Order must contain at least one item")
    return [OrderLine.from_payload(item) for item in items]


def normalize_status(status: str) -> str:
    """Map legacy aliases to canonical statuses. Raises ValidationError."""
    status = (status or "").strip().lower()
    status = STATUS_ALIASES.get(status, status)
    if status not in OrderStatus.values:
        raise ValidationError("INVALID_STATUS", status=status)
    return status


def normalize_fulfillment(fulfillment_type: str) -> str:
    value = (fulfillment_type or FulfillmentType.PICKUP).strip().lower()
    value = FULFILLMENT_ALIASES.get(value, value)
    if value not in FulfillmentType.values:
        raise ValidationError("INVALID_FULFILLMENT_TYPE", fulfillment_type=fulfillment_type)
    return value


class OrderService:
    """
    Service for order creation and status transitions.

    Uses @classmethod for extensibility (consistent with other services).
    Only checkout() creates orders; only transition() changes status.
    Per-order mutations lock the order row (select_for_update) inside
    transaction.atomic(), so concurrent cashiers are serialized.
    """

    # ======================================================================
    # Checkout
    # ======================================================================

    @classmethod
    def checkout(
        cls,
        items,
        payment_method: str,
        customer_name: str = "",
        customer_phone: str = "",
        customer_email: str = "",
        loyalty_account=None,
        fulfillment_type: str = FulfillmentType.PICKUP,
        apply_discount: bool = False,
        free_item_id: str | None = None,
        total_amount=None,
        order_number: str | None = None,
        created_by: str = "",
    ) -> Order:
        """
        Create a pending order from cart contents.

        Rewards are applied in order: free item first, then the 10%
        discount on what remains. Both require a loyalty card.

        Args:
            items: Item payloads (see OrderLine.from_payload)
            payment_method: One of PaymentMethod values
            customer_name / customer_phone / customer_email: Customer info
            loyalty_account: LoyaltyAccount or id (optional)
            fulfillment_type: pickup, dine_in or delivery
            apply_discount: Use the card's 10% discount
            free_item_id: Menu item id to take as a free cup
            total_amount: Total computed by the client, verified if given
            order_number: Display number (generated when omitted)
            created_by: Cashier username, empty for self-checkout

        Returns:
            Created Order (status pending)

        Raises:
            ValidationError: Bad items, payment method, fulfillment type,
                unavailable discount, or TOTAL_MISMATCH
            NotFound: Unknown loyalty account
            NoFreeCupsAvailable: free_item_id without an available cup
        """
        lines = normalize_items(items)
        if payment_method not in PaymentMethod.values:
            raise ValidationError("INVALID_PAYMENT_METHOD", payment_method=payment_method)
        fulfillment = normalize_fulfillment(fulfillment_type)

        account = LoyaltyLedger.get(loyalty_account) if loyalty_account else None
        if payment_method == PaymentMethod.QAHWA_CARD and account is None:
            raise ValidationError("LOYALTY_CARD_REQUIRED", payment_method=payment_method)

        subtotal = sum((line.line_total for line in lines), Decimal("0.00")).quantize(CENTS)

        if account is not None:
            customer_name = customer_name or account.customer_name
            customer_phone = customer_phone or account.phone_number
        customer_phone = normalize_phone(customer_phone) or (customer_phone or "").strip()

        with transaction.atomic():
            order = Order.objects.create(
                order_number=order_number or generate_order_number(),
                payment_method=payment_method,
                fulfillment_type=fulfillment,
                subtotal=subtotal,
                total_amount=subtotal,
                customer_name=(customer_name or "").strip(),
                customer_phone=customer_phone,
                customer_email=(customer_email or "").strip().lower(),
                loyalty_account=account,
                created_by=created_by,
            )
            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    coffee_item_id=line.coffee_item_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for line in lines
            ])

            if free_item_id:
                cls._apply_free_item(order, free_item_id, created_by)
            if apply_discount:
                cls._apply_discount(order, created_by)

            Gates.total_matches(total_amount, order.total_amount)

        logger.info(
            "Order %s created: %s SAR via %s%s",
            order.order_number,
            order.total_amount,
            order.payment_method,
            f" (card {account.card_number})" if account else "",
        )
        order_created.send(sender=Order, order=order)
        return order

    # ======================================================================
    # Rewards on open orders (cashier flow)
    # ======================================================================

    @classmethod
    def apply_free_item(cls, order, coffee_item_id: str, changed_by: str = "") -> Order:
        """
        Take one unit of an order line as the card's free cup.

        Raises:
            OrderFinalized: If order is completed or cancelled
            ValidationError: REWARD_ALREADY_APPLIED, LOYALTY_CARD_REQUIRED,
                or item not in the order
            NoFreeCupsAvailable: If the card has no free cup
        """
        with transaction.atomic():
            order = cls._get_order_for_update(order)
            cls._apply_free_item(order, coffee_item_id, changed_by)
        return order

    @classmethod
    def apply_discount(cls, order, changed_by: str = "") -> Order:
        """
        Apply the card's 10% discount to an open order.

        Raises:
            OrderFinalized: If order is completed or cancelled
            ValidationError: REWARD_ALREADY_APPLIED, LOYALTY_CARD_REQUIRED,
                or DISCOUNT_NOT_AVAILABLE
        """
        with transaction.atomic():
            order = cls._get_order_for_update(order)
            cls._apply_discount(order, changed_by)
        return order

    @classmethod
    def _apply_free_item(cls, order: Order, coffee_item_id: str, changed_by: str) -> None:
        Gates.order_open(order)
        Gates.reward_single_use(order, "free_item")
        if not order.loyalty_account_id:
            raise ValidationError("LOYALTY_CARD_REQUIRED", order_number=order.order_number)

        item = order.items.filter(coffee_item_id=str(coffee_item_id)).first()
        if item is None:
            raise ValidationError(
                "INVALID_ITEMS",
                message=f"Item {coffee_item_id} is not in order {order.order_number}",
            )

        LoyaltyLedger.apply_free_item(
            order.loyalty_account_id,
            item.pk,
            order=order,
            created_by=changed_by,
        )

        deduction = min(item.unit_price, order.total_amount)
        order.free_item_amount = deduction
        order.total_amount -= deduction
        order.free_item_applied = True
        order.save(update_fields=[
            "free_item_amount",
            "total_amount",
            "free_item_applied",
            "updated_at",
        ])

    @classmethod
    def _apply_discount(cls, order: Order, changed_by: str) -> None:
        Gates.order_open(order)
        Gates.reward_single_use(order, "discount")
        if not order.loyalty_account_id:
            raise ValidationError("LOYALTY_CARD_REQUIRED", order_number=order.order_number)

        account = LoyaltyLedger.get(order.loyalty_account_id)
        Gates.card_active(account)
        eligibility = LoyaltyLedger.compute_discount_eligibility(account)
        if not eligibility.ten_percent_available:
            raise ValidationError(
                "DISCOUNT_NOT_AVAILABLE",
                card_number=account.card_number,
                current_stamps=eligibility.current_stamps,
            )

        amount = LoyaltyLedger.apply_percent_discount(
            account,
            order.subtotal - order.free_item_amount,
        )
        order.discount_amount = amount
        order.total_amount -= amount
        order.discount_applied = True
        order.save(update_fields=[
            "discount_amount",
            "total_amount",
            "discount_applied",
            "updated_at",
        ])
        logger.info("10%% discount (%s SAR) on order %s by %s", amount, order.order_number, changed_by or "-")

    # ======================================================================
    # Status transitions
    # ======================================================================

    @classmethod
    def transition(
        cls,
        order,
        to_status: str,
        changed_by: str = "",
        cancellation_reason: str = "",
        cancelled_by: str = "",
    ) -> Order:
        """
        Move an order to a new status.

        Side effects after the status change is stored:
        - completed: credit the linked loyalty card (best-effort)
        - NOTIFY_ON_STATUSES (ready, completed): notify the customer

        Neither side effect can undo the status change.

        Args:
            order: Order or its id
            to_status: Target status (aliases such as "confirmed" accepted)
            changed_by: Employee performing the change
            cancellation_reason / cancelled_by: For cancellations
                (cancelled_by is customer or cashier, default cashier)

        Returns:
            Updated Order

        Raises:
            ValidationError: INVALID_STATUS for unknown statuses,
                INVALID_CANCELLED_BY for an unknown cancellation source
            InvalidTransition: If the target is not reachable from the
                current status (current status in message and data)
            NotFound: Unknown order
        """
        target = normalize_status(to_status)
        if target == OrderStatus.CANCELLED:
            cancelled_by = cancelled_by or CancelledBy.CASHIER
            if cancelled_by not in CancelledBy.values:
                raise ValidationError("INVALID_CANCELLED_BY", cancelled_by=cancelled_by)

        with transaction.atomic():
            order = cls._get_order_for_update(order)
            from_status = order.status
            Gates.order_transition(from_status, target, order.fulfillment_type)

            order.status = target
            update_fields = ["status", "updated_at"]
            if target == OrderStatus.CANCELLED:
                order.cancellation_reason = cancellation_reason or ""
                order.cancelled_by = cancelled_by
                update_fields += ["cancellation_reason", "cancelled_by"]
            order.save(update_fields=update_fields)

            OrderStatusChange.objects.create(
                order=order,
                from_status=from_status,
                to_status=target,
                changed_by=changed_by,
            )

        logger.info("Order %s: %s -> %s (%s)", order.order_number, from_status, target, changed_by or "-")
        order_status_changed.send(
            sender=Order,
            order=order,
            from_status=from_status,
            to_status=target,
        )

        if target == OrderStatus.COMPLETED:
            cls._credit_loyalty(order, changed_by)
        if notifications.should_notify(target):
            notifications.notify(order)
        return order

    @classmethod
    def start_preparation(cls, order, changed_by: str = "") -> Order:
        return cls.transition(order, OrderStatus.IN_PROGRESS, changed_by)

    @classmethod
    def mark_ready(cls, order, changed_by: str = "") -> Order:
        return cls.transition(order, OrderStatus.READY, changed_by)

    @classmethod
    def dispatch(cls, order, changed_by: str = "") -> Order:
        return cls.transition(order, OrderStatus.OUT_FOR_DELIVERY, changed_by)

    @classmethod
    def complete(cls, order, changed_by: str = "") -> Order:
        return cls.transition(order, OrderStatus.COMPLETED, changed_by)

    @classmethod
    def cancel(
        cls,
        order,
        reason: str = "",
        cancelled_by: str = "cashier",
        changed_by: str = "",
    ) -> Order:
        return cls.transition(
            order,
            OrderStatus.CANCELLED,
            changed_by,
            cancellation_reason=reason,
            cancelled_by=cancelled_by,
        )

    # ======================================================================
    # Loyalty credit
    # ======================================================================

    @classmethod
    def retry_loyalty_credit(cls, order, changed_by: str = "") -> bool:
        """
        Re-drive the completion credit of a completed order.

        Returns:
            True if the card is credited (now or before), False if the
            order has no card or the credit failed again

        Raises:
            ValidationError: If the order is not completed
        """
        order = cls.get(order)
        if order.status != OrderStatus.COMPLETED:
            raise ValidationError(
                message=f"Order {order.order_number} is {order.status}, not completed.",
                order_number=order.order_number,
                status=order.status,
            )
        return cls._credit_loyalty(order, changed_by)

    @classmethod
    def _credit_loyalty(cls, order: Order, changed_by: str) -> bool:
        """
        Credit the linked card once per order. Failures are logged and
        leave loyalty_credited=False for a later retry.
        """
        if not order.loyalty_account_id:
            logger.debug("Order %s has no loyalty card, credit skipped", order.order_number)
            return False

        try:
            with transaction.atomic():
                locked = Order.objects.select_for_update().get(pk=order.pk)
                if not locked.loyalty_credited:
                    LoyaltyLedger.record_completed_purchase(
                        locked.loyalty_account_id,
                        locked.total_amount,
                        discount_applied=locked.discount_applied,
                        order=locked,
                        created_by=changed_by,
                    )
                    locked.loyalty_credited = True
                    locked.save(update_fields=["loyalty_credited", "updated_at"])
        except Exception:
            logger.exception("Loyalty credit failed for order %s", order.order_number)
            return False

        order.loyalty_credited = True
        return True

    # ======================================================================
    # Queries
    # ======================================================================

    @classmethod
    def get(cls, order) -> Order:
        """Get order by instance or id. Raises NotFound."""
        pk = order.pk if isinstance(order, Order) else order
        try:
            return Order.objects.select_related("loyalty_account").get(pk=pk)
        except (Order.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("ORDER_NOT_FOUND", order_id=str(pk))

    @classmethod
    def get_by_number(cls, order_number: str) -> Order:
        """Get order by display number. Raises NotFound."""
        try:
            return Order.objects.select_related("loyalty_account").get(order_number=order_number)
        except Order.DoesNotExist:
            raise NotFound("ORDER_NOT_FOUND", order_number=order_number)

    @classmethod
    def list_active(cls, limit: int = 50) -> list[Order]:
        """Open orders for the cashier console (oldest first)."""
        return list(
            Order.objects.exclude(status__in=TERMINAL_STATUSES)
            .select_related("loyalty_account")
            .order_by("created_at")[:limit]
        )

    @classmethod
    def _get_order_for_update(cls, order) -> Order:
        """
        Get order with row-level lock for mutation.

        MUST be called inside transaction.atomic().
        """
        pk = order.pk if isinstance(order, Order) else order
        try:
            return Order.objects.select_for_update().get(pk=pk)
        except (Order.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("ORDER_NOT_FOUND", order_id=str(pk))
