"""
Qahwa Cup JSON endpoints.

Thin HTTP layer over LoyaltyLedger and OrderService. QahwaError is
returned with its own HTTP status and as_dict() body.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from qahwacup.exceptions import QahwaError, ValidationError
from qahwacup.services.ledger import LoyaltyLedger
from qahwacup.services.orders import OrderService

logger = logging.getLogger("qahwacup.views")


def account_payload(account) -> dict:
    eligibility = LoyaltyLedger.compute_discount_eligibility(account)
    return {
        "id": str(account.pk),
        "customer_name": account.customer_name,
        "phone_number": account.phone_number,
        "card_number": account.card_number,
        "qr_token": account.qr_token,
        "tier": account.tier,
        "status": account.status,
        "stamps": account.stamps,
        "current_stamps": account.current_stamps,
        "stamps_target": account.stamps_target,
        "free_cups_earned": account.free_cups_earned,
        "free_cups_redeemed": account.free_cups_redeemed,
        "free_cups_available": account.free_cups_available,
        "total_spent": str(account.total_spent),
        "ten_percent_available": eligibility.ten_percent_available,
    }


def order_payload(order) -> dict:
    return {
        "id": str(order.pk),
        "order_number": order.order_number,
        "status": order.status,
        "fulfillment_type": order.fulfillment_type,
        "payment_method": order.payment_method,
        "subtotal": str(order.subtotal),
        "discount_amount": str(order.discount_amount),
        "free_item_amount": str(order.free_item_amount),
        "total_amount": str(order.total_amount),
        "discount_applied": order.discount_applied,
        "free_item_applied": order.free_item_applied,
        "loyalty_credited": order.loyalty_credited,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "cancellation_reason": order.cancellation_reason,
        "cancelled_by": order.cancelled_by,
        "created_at": order.created_at.isoformat(),
        "items": [
            {
                "coffee_item_id": item.coffee_item_id,
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
            }
            for item in order.items.all()
        ],
    }


def _changed_by(request) -> str:
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user.get_username()
    return ""


def _flag(data: dict, key: str) -> bool:
    """Read an optional JSON boolean. Strings such as "false" are rejected."""
    value = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValidationError(
            "VALIDATION_ERROR",
            message=f"{key} must be true or false",
            field=key,
        )
    return value


def _limit(request, default: int = 50, maximum: int = 200) -> int:
    raw = request.GET.get("limit")
    if raw is None:
        return default
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationError("VALIDATION_ERROR", message="limit must be an integer", field="limit")
    if limit <= 0:
        raise ValidationError("VALIDATION_ERROR", message="limit must be positive", field="limit")
    return min(limit, maximum)


@method_decorator(csrf_exempt, name="dispatch")
class QahwaJsonView(View):
    """
    Base view: parses the JSON body and maps QahwaError to a response.

    Money in the body is parsed as Decimal, never float.
    """

    def dispatch(self, request, *args, **kwargs):
        self.data = {}
        if request.method == "POST":
            try:
                self.data = json.loads(request.body or b"{}", parse_float=Decimal)
            except (json.JSONDecodeError, ValueError):
                return JsonResponse({"code": "INVALID_JSON", "message": "Invalid JSON"}, status=400)
            if not isinstance(self.data, dict):
                return JsonResponse({"code": "INVALID_JSON", "message": "Expected an object"}, status=400)
        try:
            return super().dispatch(request, *args, **kwargs)
        except QahwaError as exc:
            logger.debug("%s %s failed: %s", request.method, request.path, exc.code)
            return JsonResponse(exc.as_dict(), status=exc.http_status)


class CardRegisterView(QahwaJsonView):
    """POST {name, phone} -> card (created or existing)."""

    def post(self, request):
        account = LoyaltyLedger.find_or_create(
            self.data.get("name", ""),
            self.data.get("phone", ""),
            created_by=_changed_by(request),
        )
        return JsonResponse(account_payload(account))


class CardLookupView(QahwaJsonView):
    """GET card by QR token (cashier scan)."""

    def get(self, request, token):
        account = LoyaltyLedger.lookup_by_token(token)
        return JsonResponse(account_payload(account))


class CardRedeemView(QahwaJsonView):
    """POST {code} -> updated card."""

    def post(self, request, token):
        account = LoyaltyLedger.lookup_by_token(token)
        account = LoyaltyLedger.redeem_code(
            account,
            self.data.get("code", ""),
            created_by=_changed_by(request),
        )
        return JsonResponse(account_payload(account))


class CardEligibilityView(QahwaJsonView):
    def get(self, request, token):
        account = LoyaltyLedger.lookup_by_token(token)
        eligibility = LoyaltyLedger.compute_discount_eligibility(account)
        return JsonResponse({
            "ten_percent_available": eligibility.ten_percent_available,
            "free_drink_available": eligibility.free_drink_available,
            "current_stamps": eligibility.current_stamps,
            "free_cups_available": eligibility.free_cups_available,
        })


class CheckoutView(QahwaJsonView):
    """
    POST cart -> pending order. GET ?limit= -> open orders, oldest first.

    Body:
        items, payment_method, customer_name, customer_phone,
        customer_email, qr_token, fulfillment_type, apply_discount,
        free_item_id, total_amount
    """

    def get(self, request):
        orders = OrderService.list_active(limit=_limit(request))
        return JsonResponse({"orders": [order_payload(order) for order in orders]})

    def post(self, request):
        data = self.data
        account = None
        if data.get("qr_token"):
            account = LoyaltyLedger.lookup_by_token(data["qr_token"])

        order = OrderService.checkout(
            data.get("items"),
            data.get("payment_method", ""),
            customer_name=data.get("customer_name", ""),
            customer_phone=data.get("customer_phone", ""),
            customer_email=data.get("customer_email", ""),
            loyalty_account=account,
            fulfillment_type=data.get("fulfillment_type") or "pickup",
            apply_discount=_flag(data, "apply_discount"),
            free_item_id=data.get("free_item_id"),
            total_amount=data.get("total_amount"),
            order_number=data.get("order_number"),
            created_by=_changed_by(request),
        )
        return JsonResponse(order_payload(order), status=201)


class OrderStatusView(QahwaJsonView):
    """POST {status, reason?, cancelled_by?} -> updated order."""

    def post(self, request, order_number):
        order = OrderService.get_by_number(order_number)
        order = OrderService.transition(
            order,
            self.data.get("status", ""),
            changed_by=_changed_by(request),
            cancellation_reason=self.data.get("reason", ""),
            cancelled_by=self.data.get("cancelled_by", ""),
        )
        return JsonResponse(order_payload(order))


class OrderDetailView(QahwaJsonView):
    def get(self, request, order_id):
        return JsonResponse(order_payload(OrderService.get(order_id)))


class OrderByNumberView(QahwaJsonView):
    def get(self, request, order_number):
        return JsonResponse(order_payload(OrderService.get_by_number(order_number)))


class OrderFreeItemView(QahwaJsonView):
    """POST {coffee_item_id} -> order with one unit taken as the card's free cup."""

    def post(self, request, order_number):
        order = OrderService.get_by_number(order_number)
        order = OrderService.apply_free_item(
            order,
            self.data.get("coffee_item_id", ""),
            changed_by=_changed_by(request),
        )
        return JsonResponse(order_payload(order))


class OrderDiscountView(QahwaJsonView):
    """POST -> order with the card's 10% discount applied."""

    def post(self, request, order_number):
        order = OrderService.get_by_number(order_number)
        order = OrderService.apply_discount(order, changed_by=_changed_by(request))
        return JsonResponse(order_payload(order))
