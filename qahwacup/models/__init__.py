"""Qahwa Cup models.

Loyalty:
- LoyaltyAccount: stamp card, one per phone number
- CardCode: single-use drink code printed on receipts
- LoyaltyTransaction: append-only mutation log

Orders:
- Order / OrderItem: order header and canonical lines
- OrderStatusChange: status transition audit trail
"""

from qahwacup.models.loyalty import (
    CardCode,
    CardStatus,
    LoyaltyAccount,
    LoyaltyTier,
    LoyaltyTransaction,
    TransactionType,
)
from qahwacup.models.order import (
    FULFILLMENT_ALIASES,
    STATUS_ALIASES,
    STATUS_FULFILLMENT,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    CancelledBy,
    FulfillmentType,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusChange,
    PaymentMethod,
)

__all__ = [
    # Loyalty
    "LoyaltyAccount",
    "LoyaltyTier",
    "CardStatus",
    "CardCode",
    "LoyaltyTransaction",
    "TransactionType",
    # Orders
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderStatusChange",
    "FulfillmentType",
    "PaymentMethod",
    "CancelledBy",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "STATUS_ALIASES",
    "STATUS_FULFILLMENT",
    "FULFILLMENT_ALIASES",
]
