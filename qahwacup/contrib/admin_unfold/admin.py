"""
Qahwa Cup Admin with Unfold theme.

This module provides Unfold-styled admin classes for Qahwa Cup models.
To use, add 'qahwacup.contrib.admin_unfold' to INSTALLED_APPS after 'qahwacup'.

The admins will automatically unregister the basic admins and register
the Unfold versions. Admin actions are shared with qahwacup.admin.
"""

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from unfold.decorators import display

from qahwacup.admin import LoyaltyAccountAdmin as BasicLoyaltyAccountAdmin
from qahwacup.admin import OrderAdmin as BasicOrderAdmin
from qahwacup.contrib.admin_unfold.base import BaseModelAdmin, BaseTabularInline
from qahwacup.models import (
    CardCode,
    LoyaltyAccount,
    LoyaltyTransaction,
    Order,
    OrderItem,
    OrderStatusChange,
)


def _unfold_badge(text, color="base"):
    """Create Unfold badge with colored background."""
    base_classes = (
        "inline-block font-semibold h-6 leading-6 px-2 "
        "rounded-default whitespace-nowrap text-xs uppercase"
    )

    color_classes = {
        "base": "bg-base-100 text-base-700 dark:bg-base-500/20 dark:text-base-200",
        "red": "bg-red-100 text-red-700 dark:bg-red-500/20 dark:text-red-400",
        "green": "bg-green-100 text-green-700 dark:bg-green-500/20 dark:text-green-400",
        "yellow": "bg-yellow-100 text-yellow-700 dark:bg-yellow-500/20 dark:text-yellow-400",
        "blue": "bg-blue-100 text-blue-700 dark:bg-blue-500/20 dark:text-blue-400",
    }

    classes = f"{base_classes} {color_classes.get(color, color_classes['base'])}"
    return format_html('<span class="{}">{}</span>', classes, text)


TIER_BADGE_COLORS = {
    "bronze": "yellow",
    "silver": "base",
    "gold": "yellow",
    "platinum": "blue",
}

STATUS_BADGE_COLORS = {
    "pending": "base",
    "in_progress": "blue",
    "ready": "green",
    "out_for_delivery": "blue",
    "completed": "green",
    "cancelled": "red",
}


# Unregister basic admins
for model in [LoyaltyAccount, CardCode, Order]:
    try:
        admin.site.unregister(model)
    except admin.sites.NotRegistered:
        pass


# =============================================================================
# LOYALTY ACCOUNT ADMIN
# =============================================================================


class LoyaltyTransactionInline(BaseTabularInline):
    model = LoyaltyTransaction
    extra = 0
    fields = ["transaction_type", "stamps_after", "amount", "description", "created_at"]
    readonly_fields = fields
    ordering = ["-created_at"]
    max_num = 20

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LoyaltyAccount)
class LoyaltyAccountAdmin(BaseModelAdmin):
    list_display = [
        "card_number",
        "customer_name",
        "phone_number",
        "tier_badge",
        "stamps_progress",
        "free_cups_display",
        "is_active_badge",
    ]
    list_filter = ["tier", "status"]
    search_fields = ["card_number", "phone_number", "customer_name", "qr_token"]
    readonly_fields = BasicLoyaltyAccountAdmin.readonly_fields
    fieldsets = BasicLoyaltyAccountAdmin.fieldsets
    actions = BasicLoyaltyAccountAdmin.actions
    inlines = [LoyaltyTransactionInline]

    has_add_permission = BasicLoyaltyAccountAdmin.has_add_permission
    suspend_cards = BasicLoyaltyAccountAdmin.suspend_cards
    reactivate_cards = BasicLoyaltyAccountAdmin.reactivate_cards

    @display(description="Tier")
    def tier_badge(self, obj):
        return _unfold_badge(obj.get_tier_display(), TIER_BADGE_COLORS.get(obj.tier, "base"))

    @display(description="Stamps")
    def stamps_progress(self, obj):
        return f"{obj.current_stamps}/{obj.stamps_target}"

    @display(description="Free cups")
    def free_cups_display(self, obj):
        if obj.free_cups_available > 0:
            return _unfold_badge(str(obj.free_cups_available), "green")
        return "-"

    @display(description="Active", boolean=True)
    def is_active_badge(self, obj):
        return obj.is_active


# =============================================================================
# CARD CODE ADMIN
# =============================================================================


@admin.register(CardCode)
class CardCodeAdmin(BaseModelAdmin):
    list_display = ["code", "drink_name", "order_link", "redeemed_badge", "redeemed_by", "created_at"]
    list_filter = ["is_redeemed"]
    search_fields = ["code", "order__order_number", "redeemed_by__card_number"]
    readonly_fields = ["code", "order", "drink_name", "is_redeemed", "redeemed_at", "redeemed_by", "created_at"]

    def has_add_permission(self, request):
        return False

    @display(description="Redeemed", boolean=True)
    def redeemed_badge(self, obj):
        return obj.is_redeemed

    @display(description="Order")
    def order_link(self, obj):
        if obj.order_id is None:
            return "-"
        url = reverse("admin:qahwacup_order_change", args=[obj.order_id])
        return format_html(
            '<a href="{}" class="text-primary-600 hover:text-primary-700">{}</a>',
            url,
            obj.order.order_number,
        )


# =============================================================================
# ORDER ADMIN
# =============================================================================


class OrderItemInline(BaseTabularInline):
    model = OrderItem
    extra = 0
    fields = ["coffee_item_id", "name", "quantity", "unit_price"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class OrderStatusChangeInline(BaseTabularInline):
    model = OrderStatusChange
    extra = 0
    fields = ["from_status", "to_status", "changed_by", "created_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(BaseModelAdmin):
    list_display = [
        "order_number",
        "status_badge",
        "fulfillment_type",
        "payment_method",
        "total_amount",
        "card_link",
        "credited_badge",
        "created_at",
    ]
    list_filter = ["status", "fulfillment_type", "payment_method", "loyalty_credited"]
    search_fields = ["order_number", "customer_name", "customer_phone", "loyalty_account__card_number"]
    readonly_fields = BasicOrderAdmin.readonly_fields
    fieldsets = BasicOrderAdmin.fieldsets
    actions = BasicOrderAdmin.actions
    inlines = [OrderItemInline, OrderStatusChangeInline]

    has_add_permission = BasicOrderAdmin.has_add_permission
    retry_loyalty_credit = BasicOrderAdmin.retry_loyalty_credit

    def has_change_permission(self, request, obj=None):
        if obj is not None and obj.is_terminal:
            return False
        return super().has_change_permission(request, obj)

    @display(description="Status")
    def status_badge(self, obj):
        return _unfold_badge(obj.get_status_display(), STATUS_BADGE_COLORS.get(obj.status, "base"))

    @display(description="Credited", boolean=True)
    def credited_badge(self, obj):
        return obj.loyalty_credited

    @display(description="Card")
    def card_link(self, obj):
        if obj.loyalty_account_id is None:
            return "-"
        url = reverse("admin:qahwacup_loyaltyaccount_change", args=[obj.loyalty_account_id])
        return format_html(
            '<a href="{}" class="text-primary-600 hover:text-primary-700">{}</a>',
            url,
            obj.loyalty_account.card_number,
        )
