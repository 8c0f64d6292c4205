"""Qahwa Cup services.

- qahwacup.services.ledger: LoyaltyLedger (stamp cards, codes, rewards)
- qahwacup.services.orders: OrderService (checkout, status lifecycle)
- qahwacup.services.notifications: customer notification dispatch
"""

from qahwacup.services import ledger
from qahwacup.services import notifications
from qahwacup.services import orders

__all__ = ["ledger", "notifications", "orders"]
