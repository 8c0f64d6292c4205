"""Qahwa Cup exceptions."""


class BaseError(Exception):
    """
    Structured exception carrying a machine-readable code.

    Subclasses declare ``_default_messages`` (code -> message) and a
    ``default_code`` used when no code is passed.

    Usage:
        raise QahwaError("LOYALTY_CARD_NOT_FOUND", card_number="1234-ABCD")
    """

    _default_messages: dict[str, str] = {}
    default_code = "ERROR"
    http_status = 400

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._lookup_message(self.code)
        self.data = data
        super().__init__(self.message)

    @classmethod
    def _lookup_message(cls, code: str) -> str:
        for klass in cls.__mro__:
            messages = klass.__dict__.get("_default_messages", {})
            if code in messages:
                return messages[code]
        return code.replace("_", " ").capitalize()

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}

    def __repr__(self):
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class QahwaError(BaseError):
    """
    Base exception for loyalty and order operations.

    Usage:
        try:
            account = LoyaltyLedger.lookup_by_token(token)
        except QahwaError as e:
            if e.code == "LOYALTY_CARD_NOT_FOUND":
                handle_not_found()
    """

    default_code = "QAHWA_ERROR"

    _default_messages = {
        "QAHWA_ERROR": "Operation failed",
        "VALIDATION_ERROR": "Invalid input",
        "INVALID_PHONE": "Invalid phone number",
        "INVALID_TIER": "Unknown loyalty tier",
        "INVALID_AMOUNT": "Invalid money amount",
        "INVALID_ITEMS": "Invalid order items",
        "INVALID_PAYMENT_METHOD": "Invalid payment method",
        "INVALID_FULFILLMENT_TYPE": "Invalid fulfillment type",
        "INVALID_STATUS": "Unknown order status",
        "INVALID_CANCELLED_BY": "Unknown cancellation source",
        "LOYALTY_CARD_REQUIRED": "A loyalty card is required for this operation",
        "TOTAL_MISMATCH": "Total amount mismatch",
        "DISCOUNT_NOT_AVAILABLE": "Discount not available for this card",
        "REWARD_ALREADY_APPLIED": "Reward already applied to this order",
        "LOYALTY_CARD_INACTIVE": "Loyalty card is not active",
        "NOT_FOUND": "Not found",
        "LOYALTY_CARD_NOT_FOUND": "Loyalty card not found",
        "ORDER_NOT_FOUND": "Order not found",
        "CODE_NOT_FOUND": "Code invalid or already used",
        "INVALID_CODE": "Code invalid or already used",
        "CODE_ALREADY_USED": "Code invalid or already used",
        "NO_FREE_CUPS_AVAILABLE": "No free cups available",
        "INVALID_TRANSITION": "Invalid order status transition",
        "ORDER_FINALIZED": "Order is already finalized",
    }


class ValidationError(QahwaError):
    """Bad input shape."""

    default_code = "VALIDATION_ERROR"
    http_status = 400


class NotFound(QahwaError):
    """Unknown account, order or code."""

    default_code = "NOT_FOUND"
    http_status = 404


class InvalidCode(QahwaError):
    """Redemption code is malformed."""

    default_code = "INVALID_CODE"
    http_status = 400


class AlreadyUsed(QahwaError):
    """Redemption code was consumed before."""

    default_code = "CODE_ALREADY_USED"
    http_status = 409


class NoFreeCupsAvailable(QahwaError):
    default_code = "NO_FREE_CUPS_AVAILABLE"
    http_status = 409


class InvalidTransition(QahwaError):
    default_code = "INVALID_TRANSITION"
    http_status = 409


class OrderFinalized(QahwaError):
    """Order is completed or cancelled and cannot be changed."""

    default_code = "ORDER_FINALIZED"
    http_status = 409
