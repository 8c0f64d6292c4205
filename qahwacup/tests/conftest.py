"""Pytest fixtures for Qahwa Cup tests."""

import pytest

from qahwacup.models import LoyaltyAccount
from qahwacup.services.ledger import LoyaltyLedger
from qahwacup.services.orders import OrderService


@pytest.fixture
def account(db):
    """Fresh card for Ali (0 stamps, bronze)."""
    return LoyaltyLedger.find_or_create("Ali", "0500000000")


@pytest.fixture
def make_account(db):
    """Create a card with a given lifetime stamp count."""

    def _make(stamps=0, phone="0551234567", name="Sara", free_cups_redeemed=0):
        account = LoyaltyLedger.find_or_create(name, phone)
        LoyaltyAccount.objects.filter(pk=account.pk).update(
            stamps=stamps,
            free_cups_earned=stamps // 6,
            free_cups_redeemed=free_cups_redeemed,
        )
        account.refresh_from_db()
        return account

    return _make


@pytest.fixture
def items():
    """Two lattes and a croissant (subtotal 42.00)."""
    return [
        {"coffee_item_id": "latte", "name": "Latte", "unit_price": "15.00", "quantity": 2},
        {"coffee_item_id": "croissant", "name": "Croissant", "unit_price": "12.00", "quantity": 1},
    ]


@pytest.fixture
def order(db, items):
    """Pending cash order without a loyalty card."""
    return OrderService.checkout(items, "cash", order_number="O-1")


@pytest.fixture
def card_order(db, items, account):
    """Pending cash order linked to Ali's card."""
    return OrderService.checkout(items, "cash", loyalty_account=account, order_number="O-CARD")


@pytest.fixture
def codes(db):
    """Ten unredeemed drink codes."""
    return LoyaltyLedger.issue_codes(drinks=[("Latte", 10)])
