"""Qahwa Cup admin.

Counters, tier and status are read-only here; changes go through the
admin actions, which call LoyaltyLedger / OrderService so every change
is logged and locked like any other mutation. Cards and orders cannot
be added here, and completed or cancelled orders are fully read-only.
"""

from django.contrib import admin, messages
from django.utils.html import format_html

from qahwacup.exceptions import QahwaError
from qahwacup.models import (
    CardCode,
    LoyaltyAccount,
    LoyaltyTier,
    LoyaltyTransaction,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusChange,
)
from qahwacup.services.ledger import LoyaltyLedger
from qahwacup.services.orders import OrderService

TIER_COLORS = {
    "bronze": "#cd7f32",
    "silver": "#c0c0c0",
    "gold": "#ffd700",
    "platinum": "#e5e4e2",
}


# ===========================================
# Loyalty
# ===========================================


class LoyaltyTransactionInline(admin.TabularInline):
    model = LoyaltyTransaction
    extra = 0
    fields = ["transaction_type", "stamps_after", "amount", "description", "reference", "created_at"]
    readonly_fields = fields
    ordering = ["-created_at"]
    max_num = 20

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


def _make_tier_action(tier):
    def action(modeladmin, request, queryset):
        for account in queryset:
            LoyaltyLedger.set_tier(account, tier, changed_by=request.user.get_username())
        modeladmin.message_user(request, f"{queryset.count()} card(s) set to {tier}.")

    action.__name__ = f"set_tier_{tier}"
    action.short_description = f"Set tier: {tier}"
    return action


@admin.register(LoyaltyAccount)
class LoyaltyAccountAdmin(admin.ModelAdmin):
    list_display = [
        "card_number",
        "customer_name",
        "phone_number",
        "tier_badge",
        "stamps_progress",
        "free_cups_available",
        "total_spent",
        "status",
        "last_used_at",
    ]
    list_filter = ["tier", "status"]
    search_fields = ["card_number", "phone_number", "customer_name", "qr_token"]
    readonly_fields = [
        "id",
        "phone_number",
        "qr_token",
        "card_number",
        "stamps",
        "free_cups_earned",
        "free_cups_redeemed",
        "tier",
        "total_spent",
        "discount_count",
        "status",
        "last_used_at",
        "created_at",
        "updated_at",
    ]
    inlines = [LoyaltyTransactionInline]
    actions = ["suspend_cards", "reactivate_cards"] + [
        _make_tier_action(tier) for tier in LoyaltyTier.values
    ]

    fieldsets = [
        ("Card", {"fields": ["id", "card_number", "qr_token", "customer_name", "phone_number"]}),
        (
            "Stamps",
            {"fields": ["stamps", "free_cups_earned", "free_cups_redeemed", "discount_count"]},
        ),
        ("Status", {"fields": ["tier", "status", "total_spent", "last_used_at"]}),
        ("Timestamps", {"fields": ["created_at", "updated_at"], "classes": ["collapse"]}),
    ]

    def tier_badge(self, obj):
        color = TIER_COLORS.get(obj.tier, "#6c757d")
        text_color = "#000" if obj.tier in ("gold", "silver", "platinum") else "#fff"
        return format_html(
            '<span style="background:{}; color:{}; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            color,
            text_color,
            obj.get_tier_display(),
        )

    tier_badge.short_description = "Tier"

    def stamps_progress(self, obj):
        return format_html("{}/{} ({} lifetime)", obj.current_stamps, obj.stamps_target, obj.stamps)

    stamps_progress.short_description = "Stamps"

    def has_add_permission(self, request):
        # Cards are registered through LoyaltyLedger.find_or_create
        return False

    @admin.action(description="Suspend selected cards")
    def suspend_cards(self, request, queryset):
        for account in queryset:
            LoyaltyLedger.suspend(account, changed_by=request.user.get_username())
        self.message_user(request, f"{queryset.count()} card(s) suspended.")

    @admin.action(description="Reactivate selected cards")
    def reactivate_cards(self, request, queryset):
        for account in queryset:
            LoyaltyLedger.reactivate(account, changed_by=request.user.get_username())
        self.message_user(request, f"{queryset.count()} card(s) reactivated.")


@admin.register(CardCode)
class CardCodeAdmin(admin.ModelAdmin):
    list_display = ["code", "drink_name", "order", "is_redeemed", "redeemed_by", "redeemed_at", "created_at"]
    list_filter = ["is_redeemed"]
    search_fields = ["code", "order__order_number", "redeemed_by__card_number"]
    readonly_fields = ["code", "order", "drink_name", "is_redeemed", "redeemed_at", "redeemed_by", "created_at"]

    def has_add_permission(self, request):
        return False


@admin.register(LoyaltyTransaction)
class LoyaltyTransactionAdmin(admin.ModelAdmin):
    list_display = [
        "created_at",
        "card_number",
        "transaction_type",
        "stamps_after",
        "amount",
        "description",
    ]
    list_filter = ["transaction_type"]
    search_fields = ["account__card_number", "account__phone_number", "description", "reference"]
    readonly_fields = [
        "account",
        "order",
        "transaction_type",
        "stamps_after",
        "amount",
        "description",
        "reference",
        "created_at",
        "created_by",
    ]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def card_number(self, obj):
        return obj.account.card_number

    card_number.short_description = "Card"


# ===========================================
# Orders
# ===========================================


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ["coffee_item_id", "name", "quantity", "unit_price"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class OrderStatusChangeInline(admin.TabularInline):
    model = OrderStatusChange
    extra = 0
    fields = ["from_status", "to_status", "changed_by", "created_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


def _make_transition_action(status):
    def action(modeladmin, request, queryset):
        done = 0
        for order in queryset:
            try:
                OrderService.transition(order, status, changed_by=request.user.get_username())
                done += 1
            except QahwaError as exc:
                modeladmin.message_user(request, f"{order.order_number}: {exc.message}", messages.ERROR)
        if done:
            modeladmin.message_user(request, f"{done} order(s) moved to {status}.")

    action.__name__ = f"mark_{status}"
    action.short_description = f"Mark as {status.replace('_', ' ')}"
    return action


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        "order_number",
        "status_badge",
        "fulfillment_type",
        "payment_method",
        "total_amount",
        "customer_name",
        "loyalty_account",
        "loyalty_credited",
        "created_at",
    ]
    list_filter = ["status", "fulfillment_type", "payment_method", "loyalty_credited"]
    search_fields = ["order_number", "customer_name", "customer_phone", "loyalty_account__card_number"]
    readonly_fields = [
        "id",
        "order_number",
        "status",
        "fulfillment_type",
        "payment_method",
        "subtotal",
        "discount_amount",
        "free_item_amount",
        "total_amount",
        "discount_applied",
        "free_item_applied",
        "loyalty_credited",
        "loyalty_account",
        "cancellation_reason",
        "cancelled_by",
        "created_by",
        "created_at",
        "updated_at",
    ]
    inlines = [OrderItemInline, OrderStatusChangeInline]
    actions = [
        _make_transition_action(status)
        for status in (
            OrderStatus.IN_PROGRESS,
            OrderStatus.READY,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.COMPLETED,
            OrderStatus.CANCELLED,
        )
    ] + ["retry_loyalty_credit"]

    fieldsets = [
        (None, {"fields": ["id", "order_number", "status", "fulfillment_type", "payment_method"]}),
        ("Customer", {"fields": ["customer_name", "customer_phone", "customer_email", "loyalty_account"]}),
        (
            "Amounts",
            {
                "fields": [
                    "subtotal",
                    "free_item_amount",
                    "discount_amount",
                    "total_amount",
                    "free_item_applied",
                    "discount_applied",
                    "loyalty_credited",
                ]
            },
        ),
        (
            "System",
            {
                "fields": ["cancellation_reason", "cancelled_by", "created_by", "created_at", "updated_at"],
                "classes": ["collapse"],
            },
        ),
    ]

    def status_badge(self, obj):
        colors = {
            "pending": "#6c757d",
            "in_progress": "#0d6efd",
            "ready": "#198754",
            "out_for_delivery": "#6f42c1",
            "completed": "#212529",
            "cancelled": "#dc3545",
        }
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            colors.get(obj.status, "#6c757d"),
            obj.get_status_display(),
        )

    status_badge.short_description = "Status"

    def has_add_permission(self, request):
        # Orders are created by OrderService.checkout only
        return False

    def has_change_permission(self, request, obj=None):
        # Completed and cancelled orders are view-only
        if obj is not None and obj.is_terminal:
            return False
        return super().has_change_permission(request, obj)

    @admin.action(description="Retry loyalty credit")
    def retry_loyalty_credit(self, request, queryset):
        credited = 0
        for order in queryset.filter(status=OrderStatus.COMPLETED, loyalty_credited=False):
            if OrderService.retry_loyalty_credit(order, changed_by=request.user.get_username()):
                credited += 1
        self.message_user(request, f"{credited} order(s) credited.")
