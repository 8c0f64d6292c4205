"""Normalization and token helpers shared by models and services."""

import re
import secrets
import string
import time
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTS = Decimal("0.01")

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CARD_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def normalize_phone(phone: str | None, country_code: str | None = None) -> str:
    """
    Normalize a Saudi mobile number to local format (05XXXXXXXX).

    Accepts 05XXXXXXXX, 5XXXXXXXX, +9665XXXXXXXX, 009665XXXXXXXX and
    any of these with spaces or dashes. Returns "" when the value is not
    a mobile number.
    """
    if not phone:
        return ""
    if country_code is None:
        from qahwacup.conf import qahwacup_settings

        country_code = qahwacup_settings.PHONE_COUNTRY_CODE

    digits = re.sub(r"\D", "", str(phone))
    if digits.startswith("00"):
        digits = digits[2:]
    if digits.startswith(country_code):
        digits = digits[len(country_code):]
    if digits.startswith("0"):
        digits = digits[1:]

    if len(digits) == 9 and digits.startswith("5"):
        return f"0{digits}"
    return ""


def international_phone(phone: str, country_code: str | None = None) -> str:
    """Local 05XXXXXXXX -> 9665XXXXXXXX (for wa.me links)."""
    if country_code is None:
        from qahwacup.conf import qahwacup_settings

        country_code = qahwacup_settings.PHONE_COUNTRY_CODE

    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith(country_code):
        return digits
    return f"{country_code}{digits.lstrip('0')}"


def to_money(value) -> Decimal:
    """
    Convert a str/int/Decimal amount to a 2-place Decimal.

    Floats are refused: currency never goes through binary floating point.

    Raises:
        ValidationError: If the value is not a finite decimal amount
    """
    from qahwacup.exceptions import ValidationError

    if isinstance(value, (bool, float)) or value is None:
        raise ValidationError("INVALID_AMOUNT", value=repr(value))
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError):
        raise ValidationError("INVALID_AMOUNT", value=repr(value))
    if not amount.is_finite():
        raise ValidationError("INVALID_AMOUNT", value=repr(value))
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def mint_qr_token() -> str:
    """Opaque token encoded in the card QR code (CUP- + 16 hex chars)."""
    return f"CUP-{uuid.uuid4().hex[:16].upper()}"


def mint_card_number() -> str:
    """Human-readable card number: last 8 digits of epoch millis + 4 chars."""
    millis = str(int(time.time() * 1000))[-8:]
    suffix = "".join(secrets.choice(_CARD_SUFFIX_ALPHABET) for _ in range(4))
    return f"{millis}-{suffix}"


def generate_redemption_code(length: int | None = None) -> str:
    if length is None:
        from qahwacup.conf import qahwacup_settings

        length = qahwacup_settings.REDEMPTION_CODE_LENGTH
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def generate_order_number() -> str:
    millis = int(time.time() * 1000)
    return f"ORD-{millis}-{secrets.randbelow(1000):03d}"
