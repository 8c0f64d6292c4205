"""OrderNotifier adapters."""

import logging
from urllib.parse import quote

from django.conf import settings
from django.core.mail import send_mail

from qahwacup.conf import qahwacup_settings
from qahwacup.utils import international_phone

logger = logging.getLogger("qahwacup.notifications")

STATUS_LABELS = {
    "pending": "received",
    "in_progress": "being prepared",
    "ready": "ready for pickup",
    "out_for_delivery": "on its way",
    "completed": "completed",
    "cancelled": "cancelled",
}


def build_message(order) -> str:
    """Plain-text status message for an order."""
    name = order.customer_name or "there"
    status = STATUS_LABELS.get(order.status, order.status)
    return (
        f"Hello {name},\n\n"
        f"Your order {order.order_number} is {status}.\n"
        f"Total: {order.total_amount} SAR\n\n"
        f"Thank you for choosing {qahwacup_settings.SHOP_NAME}!"
    )


class LoggingNotifier:
    """Default notifier: writes the message to the log."""

    def notify(self, order) -> None:
        logger.info("Order %s is now %s", order.order_number, order.status)


class WhatsAppLinkNotifier:
    """
    Builds a wa.me link with the status message for the cashier to open.

    Orders without a customer phone are skipped.
    """

    def build_link(self, order) -> str | None:
        if not order.customer_phone:
            return None
        phone = international_phone(order.customer_phone)
        return f"https://wa.me/{phone}?text={quote(build_message(order))}"

    def notify(self, order) -> None:
        link = self.build_link(order)
        if link is None:
            logger.debug("Order %s has no phone, WhatsApp link skipped", order.order_number)
            return
        logger.info("WhatsApp notification for order %s: %s", order.order_number, link)


class EmailNotifier:
    """Sends the status message by email (Django mail backend)."""

    def notify(self, order) -> None:
        if not order.customer_email:
            logger.debug("Order %s has no email, mail skipped", order.order_number)
            return
        send_mail(
            subject=f"{qahwacup_settings.SHOP_NAME} - order {order.order_number}",
            message=build_message(order),
            from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
            recipient_list=[order.customer_email],
            fail_silently=False,
        )
        logger.info("Order %s status mail sent to %s", order.order_number, order.customer_email)
