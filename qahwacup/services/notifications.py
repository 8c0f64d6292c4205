"""Customer notification dispatch."""

import logging

from django.utils.module_loading import import_string

from qahwacup.conf import qahwacup_settings
from qahwacup.protocols.notifications import OrderNotifier

logger = logging.getLogger(__name__)


def get_notifier() -> OrderNotifier:
    """Instantiate the configured ORDER_NOTIFIER."""
    notifier_class = import_string(qahwacup_settings.ORDER_NOTIFIER)
    return notifier_class()


def should_notify(status: str) -> bool:
    return status in qahwacup_settings.NOTIFY_ON_STATUSES


def notify(order) -> bool:
    """
    Fire-and-forget customer notification.

    Errors (including a misconfigured notifier) are logged, never raised.

    Returns:
        True if the notifier ran without error
    """
    try:
        get_notifier().notify(order)
    except Exception:
        logger.exception("Notification failed for order %s", order.order_number)
        return False
    return True
