"""
Qahwa Cup Gates - Validation rules.

G1: PhoneFormat - Phone is a valid local mobile number
G2: RedemptionCodeFormat - Code has the issued shape (A-Z0-9, fixed length)
G3: CardActive - Loyalty card is not suspended
G4: OrderOpen - Order is not completed or cancelled
G5: OrderTransition - Target status is reachable from the current one
G6: RewardSingleUse - Discount / free item applied at most once per order
G7: TotalMatches - Client-declared total equals the computed total

Each gate raises a QahwaError subclass; check_* variants return bool.
"""

import re
from dataclasses import dataclass
from decimal import Decimal

from qahwacup.exceptions import (
    InvalidCode,
    InvalidTransition,
    OrderFinalized,
    QahwaError,
    ValidationError,
)


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Qahwa Cup validation gates."""

    # =========================================================================
    # G1: Phone Format
    # =========================================================================

    @classmethod
    def phone_format(cls, phone: str | None) -> GateResult:
        """
        G1: Phone must normalize to a local mobile number (05XXXXXXXX).

        Raises:
            ValidationError: INVALID_PHONE if empty or malformed
        """
        from qahwacup.utils import normalize_phone

        if not phone or not str(phone).strip():
            raise ValidationError("INVALID_PHONE", message="Phone number is required", gate="G1_PhoneFormat")
        if not normalize_phone(phone):
            raise ValidationError("INVALID_PHONE", phone=str(phone), gate="G1_PhoneFormat")
        return GateResult(True, "G1_PhoneFormat")

    @classmethod
    def check_phone_format(cls, phone: str | None) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.phone_format(phone)
            return True
        except QahwaError:
            return False

    # =========================================================================
    # G2: Redemption Code Format
    # =========================================================================

    @classmethod
    def redemption_code_format(cls, code: str | None) -> GateResult:
        """
        G2: Code must be REDEMPTION_CODE_LENGTH characters of A-Z / 0-9.

        Input is upper-cased and stripped before matching, so codes typed
        by hand in lower case are accepted.

        Raises:
            InvalidCode: If code is empty or malformed
        """
        from qahwacup.conf import qahwacup_settings
        from qahwacup.utils import normalize_code

        length = qahwacup_settings.REDEMPTION_CODE_LENGTH
        normalized = normalize_code(code)
        if not re.fullmatch(rf"[A-Z0-9]{{{length}}}", normalized):
            raise InvalidCode(redemption_code=code or "", gate="G2_RedemptionCodeFormat")
        return GateResult(True, "G2_RedemptionCodeFormat")

    @classmethod
    def check_redemption_code_format(cls, code: str | None) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.redemption_code_format(code)
            return True
        except QahwaError:
            return False

    # =========================================================================
    # G3: Card Active
    # =========================================================================

    @classmethod
    def card_active(cls, account) -> GateResult:
        """
        G3: Suspended cards cannot collect or spend rewards.

        Raises:
            ValidationError: LOYALTY_CARD_INACTIVE
        """
        if not account.is_active:
            raise ValidationError(
                "LOYALTY_CARD_INACTIVE",
                card_number=account.card_number,
                status=account.status,
                gate="G3_CardActive",
            )
        return GateResult(True, "G3_CardActive")

    # =========================================================================
    # G4: Order Open
    # =========================================================================

    @classmethod
    def order_open(cls, order) -> GateResult:
        """
        G4: Completed and cancelled orders are immutable.

        Raises:
            OrderFinalized: If order is in a terminal status
        """
        if order.is_terminal:
            raise OrderFinalized(
                message=f"Order {order.order_number} is already {order.status}.",
                order_number=order.order_number,
                status=order.status,
                gate="G4_OrderOpen",
            )
        return GateResult(True, "G4_OrderOpen")

    @classmethod
    def check_order_open(cls, order) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.order_open(order)
            return True
        except QahwaError:
            return False

    # =========================================================================
    # G5: Order Transition
    # =========================================================================

    @classmethod
    def order_transition(
        cls,
        current_status: str,
        target_status: str,
        fulfillment_type: str | None = None,
    ) -> GateResult:
        """
        G5: Target status must be allowed from the current status.

        ``ready`` is only reachable for pickup / dine-in orders and
        ``out_for_delivery`` only for delivery orders.

        Raises:
            InvalidTransition: With the current status in message and data
        """
        from qahwacup.models import STATUS_FULFILLMENT, VALID_TRANSITIONS

        allowed = VALID_TRANSITIONS.get(current_status, set())
        if target_status not in allowed:
            raise InvalidTransition(
                message=f"Cannot change order from '{current_status}' to '{target_status}'.",
                current_status=current_status,
                target_status=target_status,
                allowed=sorted(str(s) for s in allowed),
                gate="G5_OrderTransition",
            )

        restricted_to = STATUS_FULFILLMENT.get(target_status)
        if restricted_to and fulfillment_type not in restricted_to:
            raise InvalidTransition(
                message=f"'{target_status}' does not apply to {fulfillment_type} orders.",
                current_status=current_status,
                target_status=target_status,
                fulfillment_type=fulfillment_type,
                gate="G5_OrderTransition",
            )

        return GateResult(True, "G5_OrderTransition")

    @classmethod
    def check_order_transition(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.order_transition(*args, **kwargs)
            return True
        except QahwaError:
            return False

    # =========================================================================
    # G6: Reward Single Use
    # =========================================================================

    REWARD_FLAGS = {
        "discount": "discount_applied",
        "free_item": "free_item_applied",
    }

    @classmethod
    def reward_single_use(cls, order, reward: str) -> GateResult:
        """
        G6: Each reward kind is applied at most once per order.

        Args:
            order: Order
            reward: "discount" or "free_item"

        Raises:
            ValidationError: REWARD_ALREADY_APPLIED
        """
        flag = cls.REWARD_FLAGS[reward]
        if getattr(order, flag):
            raise ValidationError(
                "REWARD_ALREADY_APPLIED",
                order_number=order.order_number,
                reward=reward,
                gate="G6_RewardSingleUse",
            )
        return GateResult(True, "G6_RewardSingleUse")

    # =========================================================================
    # G7: Total Matches
    # =========================================================================

    @classmethod
    def total_matches(cls, declared: Decimal | None, computed: Decimal) -> GateResult:
        """
        G7: A total sent by the client must equal the server-side total.

        No total declared means nothing to compare.

        Raises:
            ValidationError: TOTAL_MISMATCH
        """
        if declared is None:
            return GateResult(True, "G7_TotalMatches", "No declared total (skipped)")

        from qahwacup.utils import to_money

        if to_money(declared) != computed:
            raise ValidationError(
                "TOTAL_MISMATCH",
                declared=str(to_money(declared)),
                computed=str(computed),
                gate="G7_TotalMatches",
            )
        return GateResult(True, "G7_TotalMatches")
