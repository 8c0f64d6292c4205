"""Smoke tests for the Unfold admin (skipped without django-unfold)."""

import importlib
import sys
from unittest.mock import patch

import pytest
from django.contrib.admin import AdminSite

pytest.importorskip("unfold")

from unfold.admin import ModelAdmin  # noqa: E402

from qahwacup.models import CardCode, LoyaltyAccount, Order, OrderStatus  # noqa: E402
from qahwacup.services.orders import OrderService  # noqa: E402


pytestmark = pytest.mark.django_db

UNFOLD_ADMIN = "qahwacup.contrib.admin_unfold.admin"


@pytest.fixture
def unfold_site():
    """Import the Unfold admin against a private site, leaving admin.site alone."""
    site = AdminSite(name="unfold_test")
    sys.modules.pop(UNFOLD_ADMIN, None)
    with patch("django.contrib.admin.site", site), patch("django.contrib.admin.sites.site", site):
        importlib.import_module(UNFOLD_ADMIN)
    yield site
    sys.modules.pop(UNFOLD_ADMIN, None)


@pytest.fixture
def admin_request(rf, admin_user):
    request = rf.get("/admin/")
    request.user = admin_user
    return request


class TestUnfoldAdmin:
    @pytest.mark.parametrize("model", [LoyaltyAccount, CardCode, Order])
    def test_registered(self, unfold_site, model):
        assert isinstance(unfold_site._registry[model], ModelAdmin)

    def test_order_guards(self, unfold_site, admin_request, order):
        model_admin = unfold_site._registry[Order]

        assert model_admin.has_add_permission(admin_request) is False
        assert model_admin.has_change_permission(admin_request, order) is True
        assert "payment_method" in model_admin.get_readonly_fields(admin_request, order)

        for status in (OrderStatus.IN_PROGRESS, OrderStatus.READY, OrderStatus.COMPLETED):
            order = OrderService.transition(order, status)
        assert model_admin.has_change_permission(admin_request, order) is False

    def test_account_guards(self, unfold_site, admin_request, account):
        model_admin = unfold_site._registry[LoyaltyAccount]

        assert model_admin.has_add_permission(admin_request) is False
        assert "phone_number" in model_admin.get_readonly_fields(admin_request, account)

    def test_shares_basic_actions(self, unfold_site):
        from qahwacup.admin import OrderAdmin as BasicOrderAdmin

        assert unfold_site._registry[Order].actions == BasicOrderAdmin.actions

    def test_badges(self, unfold_site, card_order, account):
        order_admin = unfold_site._registry[Order]
        account_admin = unfold_site._registry[LoyaltyAccount]

        assert "Pending" in order_admin.status_badge(card_order)
        assert account.card_number in order_admin.card_link(card_order)
        assert "Bronze" in account_admin.tier_badge(account)
        assert account_admin.stamps_progress(account) == "0/6"
