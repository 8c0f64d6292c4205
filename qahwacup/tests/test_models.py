"""Tests for Qahwa Cup models."""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from qahwacup.models import LoyaltyAccount, OrderItem


pytestmark = pytest.mark.django_db


class TestLoyaltyAccount:
    def test_minted_on_create(self, db):
        account = LoyaltyAccount.objects.create(customer_name="Huda", phone_number="+966 55 000 1111")

        assert account.phone_number == "0550001111"
        assert account.qr_token.startswith("CUP-")
        assert len(account.card_number) == 13

    def test_tokens_unique_per_card(self, account, make_account):
        other = make_account()
        assert other.qr_token != account.qr_token
        assert other.card_number != account.card_number

    def test_tokens_stable_on_save(self, account):
        token, number = account.qr_token, account.card_number
        account.customer_name = "Ali Hassan"
        account.save()
        account.refresh_from_db()
        assert (account.qr_token, account.card_number) == (token, number)

    def test_phone_unique(self, account):
        with pytest.raises(IntegrityError), transaction.atomic():
            LoyaltyAccount.objects.create(customer_name="Copy", phone_number="0500000000")

    def test_card_face(self, make_account):
        account = make_account(stamps=14, free_cups_redeemed=1)

        assert account.stamps_target == 6
        assert account.current_stamps == 2
        assert account.stamps_remaining == 4
        assert account.free_cups_earned == 2
        assert account.free_cups_available == 1

    def test_stamps_target_from_settings(self, account, settings):
        settings.QAHWACUP = {"STAMPS_PER_FREE_CUP": 10}
        assert account.stamps_target == 10

    def test_free_cups_cannot_be_overdrawn(self, account):
        with pytest.raises(IntegrityError), transaction.atomic():
            LoyaltyAccount.objects.filter(pk=account.pk).update(free_cups_redeemed=1)

    def test_str(self, make_account):
        account = make_account(stamps=3)
        assert str(account) == f"{account.card_number}: 3/6 | bronze"


class TestOrder:
    def test_is_terminal(self, order):
        assert order.is_terminal is False
        order.status = "cancelled"
        assert order.is_terminal is True

    def test_line_total(self, order):
        latte = order.items.get(coffee_item_id="latte")
        assert latte.line_total == Decimal("30.00")

    def test_items_keep_insertion_order(self, order):
        assert list(order.items.values_list("coffee_item_id", flat=True)) == ["latte", "croissant"]

    def test_str(self, order):
        assert str(order) == "O-1 (pending)"
        assert str(OrderItem(order=order, coffee_item_id="x", name="Mocha", quantity=2, unit_price=1)) == "2x Mocha"
