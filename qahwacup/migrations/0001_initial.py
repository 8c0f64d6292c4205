# Generated migration for loyalty cards and orders

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


ORDER_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("in_progress", "In progress"),
    ("ready", "Ready"),
    ("out_for_delivery", "Out for delivery"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LoyaltyAccount",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("customer_name", models.CharField(blank=True, max_length=200, verbose_name="customer name")),
                (
                    "phone_number",
                    models.CharField(
                        help_text="Local mobile format (05XXXXXXXX)",
                        max_length=20,
                        unique=True,
                        verbose_name="phone number",
                    ),
                ),
                ("qr_token", models.CharField(editable=False, max_length=100, unique=True, verbose_name="QR token")),
                ("card_number", models.CharField(editable=False, max_length=20, unique=True, verbose_name="card number")),
                (
                    "stamps",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Total stamps ever collected (never decreases)",
                        verbose_name="lifetime stamps",
                    ),
                ),
                ("free_cups_earned", models.PositiveIntegerField(default=0, verbose_name="free cups earned")),
                ("free_cups_redeemed", models.PositiveIntegerField(default=0, verbose_name="free cups redeemed")),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("bronze", "Bronze"),
                            ("silver", "Silver"),
                            ("gold", "Gold"),
                            ("platinum", "Platinum"),
                        ],
                        default="bronze",
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                (
                    "total_spent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        verbose_name="total spent",
                    ),
                ),
                ("discount_count", models.PositiveIntegerField(default=0, verbose_name="discounts used")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("suspended", "Suspended")],
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("last_used_at", models.DateTimeField(blank=True, null=True, verbose_name="last used at")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "loyalty account",
                "verbose_name_plural": "loyalty accounts",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(free_cups_redeemed__lte=models.F("free_cups_earned")),
                        name="qahwacup_free_cups_not_overdrawn",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("order_number", models.CharField(max_length=40, unique=True, verbose_name="order number")),
                (
                    "status",
                    models.CharField(
                        choices=ORDER_STATUS_CHOICES,
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                (
                    "fulfillment_type",
                    models.CharField(
                        choices=[
                            ("pickup", "Pickup"),
                            ("dine_in", "Dine-in"),
                            ("delivery", "Delivery"),
                        ],
                        default="pickup",
                        max_length=20,
                        verbose_name="fulfillment",
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("stc", "STC Pay"),
                            ("alinma", "Alinma Pay"),
                            ("ur", "Ur Pay"),
                            ("barq", "Barq"),
                            ("rajhi", "Al Rajhi"),
                            ("qahwa-card", "Qahwa card"),
                        ],
                        max_length=20,
                        verbose_name="payment method",
                    ),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="subtotal")),
                (
                    "discount_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10, verbose_name="discount"),
                ),
                (
                    "free_item_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10, verbose_name="free item"),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="total")),
                ("discount_applied", models.BooleanField(default=False, verbose_name="discount applied")),
                ("free_item_applied", models.BooleanField(default=False, verbose_name="free item applied")),
                (
                    "loyalty_credited",
                    models.BooleanField(
                        default=False,
                        help_text="Set once the completion credit reached the loyalty card",
                        verbose_name="loyalty credited",
                    ),
                ),
                ("customer_name", models.CharField(blank=True, max_length=200, verbose_name="customer name")),
                ("customer_phone", models.CharField(blank=True, max_length=20, verbose_name="customer phone")),
                ("customer_email", models.EmailField(blank=True, max_length=254, verbose_name="customer email")),
                ("cancellation_reason", models.TextField(blank=True, verbose_name="cancellation reason")),
                (
                    "cancelled_by",
                    models.CharField(
                        blank=True,
                        choices=[("customer", "Customer"), ("cashier", "Cashier")],
                        max_length=20,
                        verbose_name="cancelled by",
                    ),
                ),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "loyalty_account",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="qahwacup.loyaltyaccount",
                        verbose_name="loyalty account",
                    ),
                ),
            ],
            options={
                "verbose_name": "order",
                "verbose_name_plural": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "-created_at"], name="qahwacup_order_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("coffee_item_id", models.CharField(max_length=64, verbose_name="menu item")),
                ("name", models.CharField(blank=True, max_length=200, verbose_name="name")),
                ("quantity", models.PositiveIntegerField(verbose_name="quantity")),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="unit price")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="qahwacup.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "order item",
                "verbose_name_plural": "order items",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusChange",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(choices=ORDER_STATUS_CHOICES, max_length=20, verbose_name="from")),
                ("to_status", models.CharField(choices=ORDER_STATUS_CHOICES, max_length=20, verbose_name="to")),
                ("changed_by", models.CharField(blank=True, max_length=100, verbose_name="changed by")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_changes",
                        to="qahwacup.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "order status change",
                "verbose_name_plural": "order status changes",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="CardCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True, verbose_name="code")),
                ("drink_name", models.CharField(blank=True, max_length=200, verbose_name="drink")),
                ("is_redeemed", models.BooleanField(db_index=True, default=False, verbose_name="redeemed")),
                ("redeemed_at", models.DateTimeField(blank=True, null=True, verbose_name="redeemed at")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="card_codes",
                        to="qahwacup.order",
                        verbose_name="issued for order",
                    ),
                ),
                (
                    "redeemed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redeemed_codes",
                        to="qahwacup.loyaltyaccount",
                        verbose_name="redeemed by",
                    ),
                ),
            ],
            options={
                "verbose_name": "card code",
                "verbose_name_plural": "card codes",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("code_redeemed", "Code redeemed"),
                            ("free_cup_earned", "Free cup earned"),
                            ("free_cup_redeemed", "Free cup redeemed"),
                            ("discount_applied", "Discount applied"),
                            ("purchase", "Purchase"),
                            ("tier_change", "Tier change"),
                            ("status_change", "Status change"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("stamps_after", models.PositiveIntegerField(verbose_name="stamps after")),
                (
                    "amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="amount"),
                ),
                ("description", models.CharField(blank=True, max_length=200, verbose_name="description")),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="External reference (e.g. code:ABC123)",
                        max_length=100,
                        verbose_name="reference",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transactions",
                        to="qahwacup.loyaltyaccount",
                        verbose_name="account",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="loyalty_transactions",
                        to="qahwacup.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "loyalty transaction",
                "verbose_name_plural": "loyalty transactions",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["account", "-created_at"], name="qahwacup_ltx_account_idx"),
                ],
            },
        ),
    ]
