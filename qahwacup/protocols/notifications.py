"""Customer notification protocol."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from qahwacup.models import Order


@runtime_checkable
class OrderNotifier(Protocol):
    """
    Protocol for telling a customer their order changed status.

    Fire-and-forget: implementations may raise, the caller logs and
    carries on. Implemented by adapters/notifications.py.

    Configuration in settings.py:
        QAHWACUP = {
            "ORDER_NOTIFIER": "qahwacup.adapters.notifications.WhatsAppLinkNotifier",
        }
    """

    def notify(self, order: "Order") -> None:
        """
        Notify the customer about the order's current status.

        Args:
            order: Order, already in its new status
        """
        ...
