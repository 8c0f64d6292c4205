"""Tests for management commands."""

from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from qahwacup.services.ledger import LoyaltyLedger
from qahwacup.services.orders import OrderService


pytestmark = pytest.mark.django_db


class TestSetTier:
    def test_sets_tier(self, account):
        out = StringIO()
        call_command("qahwacup_set_tier", account.card_number, "gold", stdout=out)

        account.refresh_from_db()
        assert account.tier == "gold"
        assert "is now gold" in out.getvalue()

    def test_unknown_card(self, db):
        with pytest.raises(CommandError):
            call_command("qahwacup_set_tier", "00000000-XXXX", "gold")

    def test_unknown_tier(self, account):
        with pytest.raises(CommandError):
            call_command("qahwacup_set_tier", account.card_number, "diamond")


class TestRetryCredits:
    def test_credits_failed_orders(self, card_order, account):
        OrderService.start_preparation(card_order)
        OrderService.mark_ready(card_order)
        with patch.object(LoyaltyLedger, "record_completed_purchase", side_effect=RuntimeError("boom")):
            OrderService.complete(card_order)

        out = StringIO()
        call_command("qahwacup_retry_credits", stdout=out)

        card_order.refresh_from_db()
        account.refresh_from_db()
        assert card_order.loyalty_credited is True
        assert account.stamps == 1
        assert "Credited 1 order(s), 0 failed." in out.getvalue()

    def test_nothing_to_do(self, order):
        out = StringIO()
        call_command("qahwacup_retry_credits", stdout=out)
        assert "Credited 0 order(s), 0 failed." in out.getvalue()
