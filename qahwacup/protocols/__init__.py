"""Qahwa Cup protocols."""

from qahwacup.protocols.notifications import OrderNotifier

__all__ = [
    "OrderNotifier",
]
