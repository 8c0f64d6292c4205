"""Management command to re-drive failed loyalty credits."""

from django.core.management.base import BaseCommand

from qahwacup.models import Order, OrderStatus
from qahwacup.services.orders import OrderService


class Command(BaseCommand):
    help = "Credit loyalty cards for completed orders whose credit failed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=500,
            help="Maximum number of orders to process",
        )

    def handle(self, *args, **options):
        pending = (
            Order.objects.filter(
                status=OrderStatus.COMPLETED,
                loyalty_credited=False,
                loyalty_account__isnull=False,
            )
            .order_by("created_at")[: options["limit"]]
        )
        credited = failed = 0
        for order in pending:
            if OrderService.retry_loyalty_credit(order, changed_by="manage.py"):
                credited += 1
            else:
                failed += 1

        self.stdout.write(
            self.style.SUCCESS(f"Credited {credited} order(s), {failed} failed.")
        )
