"""Order models — orders, their lines, and the status audit trail."""

import uuid
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class OrderStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    IN_PROGRESS = "in_progress", _("In progress")
    READY = "ready", _("Ready")
    OUT_FOR_DELIVERY = "out_for_delivery", _("Out for delivery")
    COMPLETED = "completed", _("Completed")
    CANCELLED = "cancelled", _("Cancelled")


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# Legacy status names accepted on input
STATUS_ALIASES = {
    "confirmed": OrderStatus.IN_PROGRESS,
    "payment_confirmed": OrderStatus.IN_PROGRESS,
    "preparing": OrderStatus.IN_PROGRESS,
}


class FulfillmentType(models.TextChoices):
    PICKUP = "pickup", _("Pickup")
    DINE_IN = "dine_in", _("Dine-in")
    DELIVERY = "delivery", _("Delivery")


FULFILLMENT_ALIASES = {
    "dine-in": FulfillmentType.DINE_IN,
    "table": FulfillmentType.DINE_IN,
    "regular": FulfillmentType.PICKUP,
}

# Current status -> allowed next statuses
VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {
        OrderStatus.READY,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.READY: {OrderStatus.COMPLETED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

# Statuses restricted to some fulfillment types
STATUS_FULFILLMENT = {
    OrderStatus.READY: {FulfillmentType.PICKUP, FulfillmentType.DINE_IN},
    OrderStatus.OUT_FOR_DELIVERY: {FulfillmentType.DELIVERY},
}


class PaymentMethod(models.TextChoices):
    CASH = "cash", _("Cash")
    STC = "stc", _("STC Pay")
    ALINMA = "alinma", _("Alinma Pay")
    UR = "ur", _("Ur Pay")
    BARQ = "barq", _("Barq")
    RAJHI = "rajhi", _("Al Rajhi")
    QAHWA_CARD = "qahwa-card", _("Qahwa card")


class CancelledBy(models.TextChoices):
    CUSTOMER = "customer", _("Customer")
    CASHIER = "cashier", _("Cashier")


class Order(models.Model):
    """
    Customer order.

    Amounts are fixed when recorded:
        total_amount = subtotal - discount_amount - free_item_amount
    and are never recomputed from the lines afterwards.

    Status only changes through OrderService transitions. Completed and
    cancelled orders are immutable.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(_("order number"), max_length=40, unique=True)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )
    fulfillment_type = models.CharField(
        _("fulfillment"),
        max_length=20,
        choices=FulfillmentType.choices,
        default=FulfillmentType.PICKUP,
    )
    payment_method = models.CharField(
        _("payment method"),
        max_length=20,
        choices=PaymentMethod.choices,
    )

    # Amounts
    subtotal = models.DecimalField(_("subtotal"), max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(
        _("discount"), max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    free_item_amount = models.DecimalField(
        _("free item"), max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(_("total"), max_digits=10, decimal_places=2)

    # Rewards (each at most once per order)
    discount_applied = models.BooleanField(_("discount applied"), default=False)
    free_item_applied = models.BooleanField(_("free item applied"), default=False)
    loyalty_credited = models.BooleanField(
        _("loyalty credited"),
        default=False,
        help_text=_("Set once the completion credit reached the loyalty card"),
    )

    # Customer
    customer_name = models.CharField(_("customer name"), max_length=200, blank=True)
    customer_phone = models.CharField(_("customer phone"), max_length=20, blank=True)
    customer_email = models.EmailField(_("customer email"), blank=True)
    loyalty_account = models.ForeignKey(
        "qahwacup.LoyaltyAccount",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
        verbose_name=_("loyalty account"),
    )

    # Cancellation
    cancellation_reason = models.TextField(_("cancellation reason"), blank=True)
    cancelled_by = models.CharField(
        _("cancelled by"),
        max_length=20,
        choices=CancelledBy.choices,
        blank=True,
    )

    created_by = models.CharField(_("created by"), max_length=100, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("order")
        verbose_name_plural = _("orders")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="qahwacup_order_status_idx"),
        ]

    def __str__(self):
        return f"{self.order_number} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def items_count(self) -> int:
        return sum(item.quantity for item in self.items.all())


class OrderItem(models.Model):
    """One canonical order line: name, unit price, quantity."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name=_("order"),
    )
    coffee_item_id = models.CharField(_("menu item"), max_length=64)
    name = models.CharField(_("name"), max_length=200, blank=True)
    quantity = models.PositiveIntegerField(_("quantity"))
    unit_price = models.DecimalField(_("unit price"), max_digits=10, decimal_places=2)

    class Meta:
        verbose_name = _("order item")
        verbose_name_plural = _("order items")
        ordering = ["id"]

    def __str__(self):
        return f"{self.quantity}x {self.name or self.coffee_item_id}"

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class OrderStatusChange(models.Model):
    """Append-only audit row for each status transition."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="status_changes",
        verbose_name=_("order"),
    )
    from_status = models.CharField(_("from"), max_length=20, choices=OrderStatus.choices)
    to_status = models.CharField(_("to"), max_length=20, choices=OrderStatus.choices)
    changed_by = models.CharField(_("changed by"), max_length=100, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("order status change")
        verbose_name_plural = _("order status changes")
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.order_id}: {self.from_status} → {self.to_status}"
