"""Loyalty models — stamp cards, single-use drink codes, and the transaction log."""

import uuid
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class LoyaltyTier(models.TextChoices):
    """Customer loyalty tiers."""

    BRONZE = "bronze", _("Bronze")
    SILVER = "silver", _("Silver")
    GOLD = "gold", _("Gold")
    PLATINUM = "platinum", _("Platinum")


class CardStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    SUSPENDED = "suspended", _("Suspended")


class TransactionType(models.TextChoices):
    """Loyalty transaction types."""

    CODE_REDEEMED = "code_redeemed", _("Code redeemed")
    FREE_CUP_EARNED = "free_cup_earned", _("Free cup earned")
    FREE_CUP_REDEEMED = "free_cup_redeemed", _("Free cup redeemed")
    DISCOUNT_APPLIED = "discount_applied", _("Discount applied")
    PURCHASE = "purchase", _("Purchase")
    TIER_CHANGE = "tier_change", _("Tier change")
    STATUS_CHANGE = "status_change", _("Status change")


class LoyaltyAccount(models.Model):
    """
    Customer stamp card.

    One account per phone number. ``stamps`` is the lifetime stamp count and
    never decreases; the card face shows ``stamps % STAMPS_PER_FREE_CUP``.
    A free cup is earned each time the lifetime count crosses a multiple of
    STAMPS_PER_FREE_CUP, so ``free_cups_earned == stamps // target`` holds
    at all times.

    ``qr_token`` and ``card_number`` are minted once at creation and are
    the lookup keys for the cashier scan and manual entry flows.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer_name = models.CharField(_("customer name"), max_length=200, blank=True)
    phone_number = models.CharField(
        _("phone number"),
        max_length=20,
        unique=True,
        help_text=_("Local mobile format (05XXXXXXXX)"),
    )

    qr_token = models.CharField(_("QR token"), max_length=100, unique=True, editable=False)
    card_number = models.CharField(_("card number"), max_length=20, unique=True, editable=False)

    # Stamp card
    stamps = models.PositiveIntegerField(
        _("lifetime stamps"),
        default=0,
        help_text=_("Total stamps ever collected (never decreases)"),
    )
    free_cups_earned = models.PositiveIntegerField(_("free cups earned"), default=0)
    free_cups_redeemed = models.PositiveIntegerField(_("free cups redeemed"), default=0)

    # Tier (set by external policy, never derived here)
    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        default=LoyaltyTier.BRONZE,
    )

    # Lifetime aggregates
    total_spent = models.DecimalField(
        _("total spent"),
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    discount_count = models.PositiveIntegerField(_("discounts used"), default=0)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=CardStatus.choices,
        default=CardStatus.ACTIVE,
    )
    last_used_at = models.DateTimeField(_("last used at"), null=True, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("loyalty account")
        verbose_name_plural = _("loyalty accounts")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(free_cups_redeemed__lte=models.F("free_cups_earned")),
                name="qahwacup_free_cups_not_overdrawn",
            ),
        ]

    def __str__(self):
        return f"{self.card_number}: {self.current_stamps}/{self.stamps_target} | {self.tier}"

    @property
    def stamps_target(self) -> int:
        from qahwacup.conf import qahwacup_settings

        return qahwacup_settings.STAMPS_PER_FREE_CUP

    @property
    def current_stamps(self) -> int:
        """Stamps shown on the current card (wraps at the target)."""
        return self.stamps % self.stamps_target

    @property
    def stamps_remaining(self) -> int:
        return self.stamps_target - self.current_stamps

    @property
    def free_cups_available(self) -> int:
        return self.free_cups_earned - self.free_cups_redeemed

    @property
    def is_active(self) -> bool:
        return self.status == CardStatus.ACTIVE

    def save(self, *args, **kwargs):
        from qahwacup.utils import mint_card_number, mint_qr_token, normalize_phone

        if self.phone_number:
            self.phone_number = normalize_phone(self.phone_number) or self.phone_number
        if not self.qr_token:
            self.qr_token = mint_qr_token()
        if not self.card_number:
            self.card_number = mint_card_number()
        super().save(*args, **kwargs)


class CardCode(models.Model):
    """
    Single-use drink code printed on a receipt.

    Redeeming it into a loyalty card adds one stamp. Once redeemed, the
    code is bound to the redeeming card and can never be applied again.
    """

    code = models.CharField(_("code"), max_length=32, unique=True)
    order = models.ForeignKey(
        "qahwacup.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="card_codes",
        verbose_name=_("issued for order"),
    )
    drink_name = models.CharField(_("drink"), max_length=200, blank=True)

    is_redeemed = models.BooleanField(_("redeemed"), default=False, db_index=True)
    redeemed_at = models.DateTimeField(_("redeemed at"), null=True, blank=True)
    redeemed_by = models.ForeignKey(
        LoyaltyAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="redeemed_codes",
        verbose_name=_("redeemed by"),
    )
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("card code")
        verbose_name_plural = _("card codes")
        ordering = ["-created_at"]

    def __str__(self):
        state = "used" if self.is_redeemed else "open"
        return f"{self.code} ({state})"


class LoyaltyTransaction(models.Model):
    """
    Immutable record of a loyalty mutation.

    Every stamp, code redemption, free cup, discount and purchase credit is
    logged here. Rows are append-only.
    """

    account = models.ForeignKey(
        LoyaltyAccount,
        on_delete=models.CASCADE,
        related_name="transactions",
        verbose_name=_("account"),
    )
    order = models.ForeignKey(
        "qahwacup.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="loyalty_transactions",
        verbose_name=_("order"),
    )

    transaction_type = models.CharField(
        _("type"),
        max_length=20,
        choices=TransactionType.choices,
    )
    stamps_after = models.PositiveIntegerField(_("stamps after"))
    amount = models.DecimalField(
        _("amount"),
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )
    description = models.CharField(_("description"), max_length=200, blank=True)
    reference = models.CharField(
        _("reference"),
        max_length=100,
        blank=True,
        help_text=_("External reference (e.g. code:ABC123)"),
    )

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    created_by = models.CharField(_("created by"), max_length=100, blank=True)

    class Meta:
        verbose_name = _("loyalty transaction")
        verbose_name_plural = _("loyalty transactions")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["account", "-created_at"], name="qahwacup_ltx_account_idx"),
        ]

    def __str__(self):
        return f"{self.get_transaction_type_display()} — {self.description}"
