"""Loyalty ledger — stamp cards, drink codes, free cups, and discounts."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from qahwacup.conf import qahwacup_settings
from qahwacup.exceptions import (
    AlreadyUsed,
    NoFreeCupsAvailable,
    NotFound,
    ValidationError,
)
from qahwacup.gates import Gates
from qahwacup.models import (
    CardCode,
    CardStatus,
    LoyaltyAccount,
    LoyaltyTier,
    LoyaltyTransaction,
    TransactionType,
)
from qahwacup.signals import free_cup_earned, loyalty_account_created, loyalty_code_redeemed
from qahwacup.utils import CENTS, generate_redemption_code, normalize_code, normalize_phone, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscountEligibility:
    """Rewards a card can use at checkout."""

    ten_percent_available: bool
    free_drink_available: bool
    current_stamps: int = 0
    free_cups_available: int = 0


class LoyaltyLedger:
    """
    Service for stamp-card operations.

    Uses @classmethod for extensibility (consistent with other services).
    All account mutations run inside transaction.atomic() on a row
    re-read with select_for_update(), so concurrent operations on the
    same card are applied one after the other.

    Accounts may be passed as LoyaltyAccount instances or primary keys.
    """

    # ======================================================================
    # Accounts
    # ======================================================================

    @classmethod
    def find_or_create(cls, name: str, phone: str, created_by: str = "") -> LoyaltyAccount:
        """
        Get the card registered to a phone number, creating it if needed.

        Idempotent — the phone number is the natural key.

        Args:
            name: Customer name (optional on existing cards)
            phone: Mobile number in any accepted format
            created_by: Who registered the card

        Returns:
            LoyaltyAccount (created or existing)

        Raises:
            ValidationError: INVALID_PHONE if phone is empty or malformed
        """
        Gates.phone_format(phone)
        phone_normalized = normalize_phone(phone)
        name = (name or "").strip()

        with transaction.atomic():
            account, created = LoyaltyAccount.objects.get_or_create(
                phone_number=phone_normalized,
                defaults={"customer_name": name},
            )
            if not created and name and not account.customer_name:
                account.customer_name = name
                account.save(update_fields=["customer_name", "updated_at"])

        if created:
            logger.info(
                "Loyalty card %s created for %s (by %s)",
                account.card_number,
                phone_normalized,
                created_by or "self-registration",
            )
            loyalty_account_created.send(sender=LoyaltyAccount, account=account)
        return account

    @classmethod
    def get(cls, account) -> LoyaltyAccount:
        """Get account by instance or id. Raises NotFound."""
        try:
            return LoyaltyAccount.objects.get(pk=cls._account_pk(account))
        except (LoyaltyAccount.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("LOYALTY_CARD_NOT_FOUND", account_id=str(cls._account_pk(account)))

    @classmethod
    def lookup_by_token(cls, token: str) -> LoyaltyAccount:
        """
        Find an active card by its QR token (cashier scan flow).

        Raises:
            NotFound: If no active card carries this token
        """
        try:
            return LoyaltyAccount.objects.get(
                qr_token=(token or "").strip(),
                status=CardStatus.ACTIVE,
            )
        except LoyaltyAccount.DoesNotExist:
            raise NotFound("LOYALTY_CARD_NOT_FOUND", qr_token=token or "")

    @classmethod
    def lookup_by_card_number(cls, card_number: str) -> LoyaltyAccount:
        """Find a card by its printed number (manual entry). Raises NotFound."""
        try:
            return LoyaltyAccount.objects.get(card_number=(card_number or "").strip().upper())
        except LoyaltyAccount.DoesNotExist:
            raise NotFound("LOYALTY_CARD_NOT_FOUND", card_number=card_number or "")

    @classmethod
    def get_by_phone(cls, phone: str) -> LoyaltyAccount | None:
        """Get card by phone. Returns None if not registered or phone is invalid."""
        phone_normalized = normalize_phone(phone)
        if not phone_normalized:
            return None
        return LoyaltyAccount.objects.filter(phone_number=phone_normalized).first()

    # ======================================================================
    # Stamps
    # ======================================================================

    @classmethod
    def redeem_code(cls, account, code: str, created_by: str = "") -> LoyaltyAccount:
        """
        Redeem a single-use drink code into a card (+1 stamp).

        The code is bound to the card on success. Redeeming the same code
        again is rejected; it is never re-applied.

        Args:
            account: LoyaltyAccount or its id
            code: Code printed on the receipt (case-insensitive)
            created_by: Who performed the redemption

        Returns:
            Updated LoyaltyAccount

        Raises:
            InvalidCode: If code is malformed
            NotFound: If card or code does not exist
            AlreadyUsed: If code was redeemed before
            ValidationError: LOYALTY_CARD_INACTIVE for suspended cards
        """
        Gates.redemption_code_format(code)
        code = normalize_code(code)

        with transaction.atomic():
            account = cls._get_account_for_update(account)
            Gates.card_active(account)

            try:
                card_code = CardCode.objects.select_for_update().get(code=code)
            except CardCode.DoesNotExist:
                raise NotFound("CODE_NOT_FOUND", redemption_code=code)

            if card_code.is_redeemed:
                raise AlreadyUsed(
                    redemption_code=code,
                    redeemed_at=card_code.redeemed_at.isoformat() if card_code.redeemed_at else None,
                )

            now = timezone.now()
            card_code.is_redeemed = True
            card_code.redeemed_at = now
            card_code.redeemed_by = account
            card_code.save(update_fields=["is_redeemed", "redeemed_at", "redeemed_by"])

            earned = cls._add_stamp(
                account,
                TransactionType.CODE_REDEEMED,
                description=card_code.drink_name or "Drink code",
                reference=f"code:{code}",
                created_by=created_by,
            )
            account.last_used_at = now
            account.save(update_fields=[
                "stamps",
                "free_cups_earned",
                "last_used_at",
                "updated_at",
            ])

        logger.info("Code %s redeemed into card %s (stamps=%d)", code, account.card_number, account.stamps)
        loyalty_code_redeemed.send(sender=LoyaltyAccount, account=account, code=card_code)
        if earned:
            free_cup_earned.send(sender=LoyaltyAccount, account=account)
        return account

    @classmethod
    def issue_codes(
        cls,
        order=None,
        drinks: list[tuple[str, int]] | None = None,
    ) -> list[CardCode]:
        """
        Mint one single-use code per drink unit.

        Args:
            order: Order the codes are printed for (optional)
            drinks: (drink_name, quantity) pairs. Defaults to the order lines.

        Returns:
            Created CardCode list
        """
        if drinks is None:
            if order is None:
                raise ValidationError("INVALID_ITEMS", message="Either order or drinks is required")
            drinks = [(item.name or item.coffee_item_id, item.quantity) for item in order.items.all()]

        codes = []
        for drink_name, quantity in drinks:
            for _ in range(int(quantity)):
                codes.append(cls._create_code(order, drink_name))
        return codes

    @classmethod
    def _create_code(cls, order, drink_name: str, attempts: int = 5) -> CardCode:
        """Create a code, retrying on the (unlikely) unique collision."""
        for attempt in range(attempts):
            try:
                with transaction.atomic():
                    return CardCode.objects.create(
                        code=generate_redemption_code(),
                        order=order,
                        drink_name=drink_name or "",
                    )
            except IntegrityError:
                logger.warning("Card code collision (attempt %d)", attempt + 1)
        raise IntegrityError("Could not mint a unique card code")

    # ======================================================================
    # Rewards
    # ======================================================================

    @classmethod
    def compute_discount_eligibility(cls, account: LoyaltyAccount) -> DiscountEligibility:
        """
        Rewards available on this card. Pure; reads the given instance only.

        The 10% discount is offered on the last stamp before a free cup
        (stamps % target == target - 1, i.e. 5 of 6).
        """
        target = qahwacup_settings.STAMPS_PER_FREE_CUP
        available = account.free_cups_earned - account.free_cups_redeemed
        return DiscountEligibility(
            ten_percent_available=account.stamps % target == target - 1,
            free_drink_available=available > 0,
            current_stamps=account.stamps % target,
            free_cups_available=max(0, available),
        )

    @classmethod
    def apply_free_item(
        cls,
        account,
        order_item_id,
        order=None,
        created_by: str = "",
    ) -> LoyaltyAccount:
        """
        Consume one free cup.

        The ledger has no notion of "this order": applying at most once
        per order is the caller's contract (OrderService enforces it).

        Raises:
            NoFreeCupsAvailable: If no free cup is available (available=0)
            ValidationError: LOYALTY_CARD_INACTIVE for suspended cards
        """
        with transaction.atomic():
            account = cls._get_account_for_update(account)
            Gates.card_active(account)

            if account.free_cups_available <= 0:
                raise NoFreeCupsAvailable(
                    card_number=account.card_number,
                    available=0,
                )

            account.free_cups_redeemed += 1
            account.last_used_at = timezone.now()
            account.save(update_fields=["free_cups_redeemed", "last_used_at", "updated_at"])

            LoyaltyTransaction.objects.create(
                account=account,
                order=order,
                transaction_type=TransactionType.FREE_CUP_REDEEMED,
                stamps_after=account.stamps,
                description="Free cup redeemed",
                reference=f"item:{order_item_id}",
                created_by=created_by,
            )

        logger.info(
            "Free cup redeemed on card %s (%d left)",
            account.card_number,
            account.free_cups_available,
        )
        return account

    @classmethod
    def apply_percent_discount(cls, account: LoyaltyAccount, subtotal) -> Decimal:
        """
        Discount amount for a subtotal (DISCOUNT_RATE, 2 places, half-up).

        Pure calculation. discount_count is recorded when the order
        completes (record_completed_purchase).
        """
        amount = to_money(subtotal)
        if amount < 0:
            raise ValidationError("INVALID_AMOUNT", value=str(amount))
        rate = Decimal(str(qahwacup_settings.DISCOUNT_RATE))
        return (amount * rate).quantize(CENTS, rounding=ROUND_HALF_UP)

    @classmethod
    def record_completed_purchase(
        cls,
        account,
        amount_spent,
        discount_applied: bool = False,
        order=None,
        created_by: str = "",
    ) -> LoyaltyAccount:
        """
        Credit a completed order: +1 stamp, total_spent, discount_count.

        Args:
            account: LoyaltyAccount or its id
            amount_spent: Order total actually paid
            discount_applied: Whether the order used the 10% discount
            order: Completed order (for the transaction log)
            created_by: Who completed the order

        Returns:
            Updated LoyaltyAccount
        """
        amount = to_money(amount_spent)
        if amount < 0:
            raise ValidationError("INVALID_AMOUNT", value=str(amount))
        reference = f"order:{order.order_number}" if order is not None else ""

        with transaction.atomic():
            account = cls._get_account_for_update(account)

            earned = cls._add_stamp(
                account,
                TransactionType.PURCHASE,
                description="Purchase",
                reference=reference,
                order=order,
                amount=amount,
                created_by=created_by,
            )
            account.total_spent += amount
            update_fields = ["stamps", "free_cups_earned", "total_spent", "last_used_at", "updated_at"]

            if discount_applied:
                account.discount_count += 1
                update_fields.append("discount_count")
                LoyaltyTransaction.objects.create(
                    account=account,
                    order=order,
                    transaction_type=TransactionType.DISCOUNT_APPLIED,
                    stamps_after=account.stamps,
                    amount=order.discount_amount if order is not None else None,
                    description="10% discount",
                    reference=reference,
                    created_by=created_by,
                )

            account.last_used_at = timezone.now()
            account.save(update_fields=update_fields)

        if earned:
            free_cup_earned.send(sender=LoyaltyAccount, account=account)
        return account

    # ======================================================================
    # Administration
    # ======================================================================

    @classmethod
    def set_tier(cls, account, tier: str, changed_by: str = "") -> LoyaltyAccount:
        """
        Set the card tier. Tiers come from an external policy; nothing in
        the ledger promotes or demotes cards on its own.

        Raises:
            ValidationError: INVALID_TIER
        """
        if tier not in LoyaltyTier.values:
            raise ValidationError("INVALID_TIER", tier=tier, allowed=list(LoyaltyTier.values))

        with transaction.atomic():
            account = cls._get_account_for_update(account)
            if account.tier == tier:
                return account

            old_tier = account.tier
            account.tier = tier
            account.save(update_fields=["tier", "updated_at"])
            LoyaltyTransaction.objects.create(
                account=account,
                transaction_type=TransactionType.TIER_CHANGE,
                stamps_after=account.stamps,
                description=f"{old_tier} → {tier}",
                created_by=changed_by,
            )

        logger.info("Card %s tier %s -> %s", account.card_number, old_tier, tier)
        return account

    @classmethod
    def suspend(cls, account, changed_by: str = "") -> LoyaltyAccount:
        return cls._set_status(account, CardStatus.SUSPENDED, changed_by)

    @classmethod
    def reactivate(cls, account, changed_by: str = "") -> LoyaltyAccount:
        return cls._set_status(account, CardStatus.ACTIVE, changed_by)

    @classmethod
    def get_transactions(cls, account, limit: int = 50) -> list[LoyaltyTransaction]:
        """Get transaction history for a card (most recent first)."""
        return list(
            LoyaltyTransaction.objects.filter(account_id=cls._account_pk(account))[:limit]
        )

    # ======================================================================
    # Internals
    # ======================================================================

    @classmethod
    def _set_status(cls, account, status: str, changed_by: str) -> LoyaltyAccount:
        with transaction.atomic():
            account = cls._get_account_for_update(account)
            if account.status == status:
                return account
            account.status = status
            account.save(update_fields=["status", "updated_at"])
            LoyaltyTransaction.objects.create(
                account=account,
                transaction_type=TransactionType.STATUS_CHANGE,
                stamps_after=account.stamps,
                description=status,
                created_by=changed_by,
            )
        return account

    @classmethod
    def _add_stamp(
        cls,
        account: LoyaltyAccount,
        transaction_type: str,
        description: str = "",
        reference: str = "",
        order=None,
        amount: Decimal | None = None,
        created_by: str = "",
    ) -> bool:
        """
        Add one stamp to a locked account (caller saves).

        Returns True when the stamp completed a card and earned a free cup.
        """
        target = qahwacup_settings.STAMPS_PER_FREE_CUP
        account.stamps += 1
        earned = account.stamps % target == 0
        if earned:
            account.free_cups_earned += 1

        LoyaltyTransaction.objects.create(
            account=account,
            order=order,
            transaction_type=transaction_type,
            stamps_after=account.stamps,
            amount=amount,
            description=description,
            reference=reference,
            created_by=created_by,
        )
        if earned:
            LoyaltyTransaction.objects.create(
                account=account,
                order=order,
                transaction_type=TransactionType.FREE_CUP_EARNED,
                stamps_after=account.stamps,
                description="Card complete!",
                reference=reference,
                created_by=created_by,
            )
            logger.info("Card %s earned a free cup (%d total)", account.card_number, account.free_cups_earned)
        return earned

    @staticmethod
    def _account_pk(account):
        return account.pk if isinstance(account, LoyaltyAccount) else account

    @classmethod
    def _get_account_for_update(cls, account) -> LoyaltyAccount:
        """
        Get account with row-level lock for mutation.

        MUST be called inside transaction.atomic().
        Prevents lost updates on concurrent redeem/credit/free-cup calls.
        """
        try:
            return LoyaltyAccount.objects.select_for_update().get(pk=cls._account_pk(account))
        except (LoyaltyAccount.DoesNotExist, DjangoValidationError, ValueError, TypeError):
            raise NotFound("LOYALTY_CARD_NOT_FOUND", account_id=str(cls._account_pk(account)))
