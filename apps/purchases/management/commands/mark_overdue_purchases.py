from django.core.management.base import BaseCommand
from django.utils.dateparse import parse_date

from apps.purchases.services import mark_overdue_purchases


class Command(BaseCommand):
    help = "Mark active purchases past their due date and grace period as overdue."

    def add_arguments(self, parser):
        parser.add_argument("--date", help="Evaluate as of this date (YYYY-MM-DD) instead of today.")

    def handle(self, *args, **options):
        today = parse_date(options["date"]) if options.get("date") else None
        marked = mark_overdue_purchases(today=today)
        for purchase in marked:
            self.stdout.write(f"{purchase.purchase_number} ({purchase.customer_id}) due {purchase.due_date}")
        self.stdout.write(self.style.SUCCESS(f"Overdue purchases: {len(marked)}"))
