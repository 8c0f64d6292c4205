"""Management command to set a loyalty card's tier."""

from django.core.management.base import BaseCommand, CommandError

from qahwacup.exceptions import QahwaError
from qahwacup.models import LoyaltyTier
from qahwacup.services.ledger import LoyaltyLedger


class Command(BaseCommand):
    help = "Set the tier of a loyalty card (tiers are never derived automatically)"

    def add_arguments(self, parser):
        parser.add_argument("card_number", help="Printed card number")
        parser.add_argument("tier", choices=LoyaltyTier.values)
        parser.add_argument(
            "--by",
            default="manage.py",
            help="Recorded as the author of the tier change",
        )

    def handle(self, *args, **options):
        try:
            account = LoyaltyLedger.lookup_by_card_number(options["card_number"])
            account = LoyaltyLedger.set_tier(account, options["tier"], changed_by=options["by"])
        except QahwaError as exc:
            raise CommandError(exc.message) from exc
        self.stdout.write(
            self.style.SUCCESS(f"Card {account.card_number} is now {account.tier}.")
        )
