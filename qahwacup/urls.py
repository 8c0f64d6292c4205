from django.urls import path

from .views import (
    CardEligibilityView,
    CardLookupView,
    CardRedeemView,
    CardRegisterView,
    CheckoutView,
    OrderByNumberView,
    OrderDetailView,
    OrderDiscountView,
    OrderFreeItemView,
    OrderStatusView,
)

app_name = "qahwacup"

urlpatterns = [
    path("cards/", CardRegisterView.as_view(), name="card-register"),
    path("cards/<str:token>/", CardLookupView.as_view(), name="card-lookup"),
    path("cards/<str:token>/redeem/", CardRedeemView.as_view(), name="card-redeem"),
    path("cards/<str:token>/eligibility/", CardEligibilityView.as_view(), name="card-eligibility"),
    path("orders/", CheckoutView.as_view(), name="checkout"),
    path("orders/<uuid:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("orders/number/<str:order_number>/", OrderByNumberView.as_view(), name="order-by-number"),
    path("orders/<str:order_number>/status/", OrderStatusView.as_view(), name="order-status"),
    path("orders/<str:order_number>/free-item/", OrderFreeItemView.as_view(), name="order-free-item"),
    path("orders/<str:order_number>/discount/", OrderDiscountView.as_view(), name="order-discount"),
]
