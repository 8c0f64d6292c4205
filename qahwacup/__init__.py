"""
Django Qahwa Cup - Coffee shop loyalty cards and orders.

Usage:
    from qahwacup import LoyaltyLedger, OrderService
    from qahwacup.gates import Gates, GateResult

    card = LoyaltyLedger.find_or_create("Sara", "0551234567")
    LoyaltyLedger.redeem_code(card, "ABCD1234EFGH")

    order = OrderService.checkout(items, "cash", loyalty_account=card)
    OrderService.start_preparation(order)
    OrderService.mark_ready(order)
    OrderService.complete(order)  # credits the card
"""


def __getattr__(name):
    if name == "LoyaltyLedger":
        from qahwacup.services.ledger import LoyaltyLedger

        return LoyaltyLedger
    if name == "OrderService":
        from qahwacup.services.orders import OrderService

        return OrderService
    if name == "Gates":
        from qahwacup.gates import Gates

        return Gates
    if name == "GateResult":
        from qahwacup.gates import GateResult

        return GateResult
    if name == "QahwaError":
        from qahwacup.exceptions import QahwaError

        return QahwaError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LoyaltyLedger", "OrderService", "Gates", "GateResult", "QahwaError"]
__version__ = "0.1.0"
