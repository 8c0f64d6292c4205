"""
Qahwa Cup configuration.

Usage in settings.py:
    QAHWACUP = {
        "STAMPS_PER_FREE_CUP": 6,
        "ORDER_NOTIFIER": "qahwacup.adapters.notifications.WhatsAppLinkNotifier",
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class QahwacupSettings:
    """Qahwa Cup configuration settings."""

    # Stamp card
    STAMPS_PER_FREE_CUP: int = 6
    DISCOUNT_RATE: Decimal = Decimal("0.10")

    # Single-use drink codes printed on receipts
    REDEMPTION_CODE_LENGTH: int = 12

    # Phone normalization (Saudi Arabia)
    PHONE_COUNTRY_CODE: str = "966"

    # Customer notifications
    ORDER_NOTIFIER: str = "qahwacup.adapters.notifications.LoggingNotifier"
    NOTIFY_ON_STATUSES: tuple = ("ready", "completed")

    SHOP_NAME: str = "Qahwa Cup"


def get_qahwacup_settings() -> QahwacupSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "QAHWACUP", {})
    return QahwacupSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_qahwacup_settings(), name)


qahwacup_settings = _LazySettings()
