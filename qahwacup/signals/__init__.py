"""
Qahwa Cup signals — public event API.

Emitted signals:
- loyalty_account_created: Emitted by LoyaltyLedger.find_or_create()
- loyalty_code_redeemed: Emitted by LoyaltyLedger.redeem_code()
- free_cup_earned: Emitted whenever a stamp completes a card
- order_created: Emitted by OrderService.checkout()
- order_status_changed: Emitted by OrderService.transition()
"""

from django.dispatch import Signal

# Loyalty signals (emitted by services.ledger)
loyalty_account_created = Signal()  # sender=LoyaltyAccount, account=LoyaltyAccount
loyalty_code_redeemed = Signal()  # sender=LoyaltyAccount, account, code=CardCode
free_cup_earned = Signal()  # sender=LoyaltyAccount, account

# Order signals (emitted by services.orders)
order_created = Signal()  # sender=Order, order=Order
order_status_changed = Signal()  # sender=Order, order, from_status, to_status
