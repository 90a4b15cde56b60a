from datetime import date, timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from queueing.services.ledger import sweep_no_shows


class Command(BaseCommand):
    help = "Mark entries that were never called on a past day as no-show."

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Service day as YYYY-MM-DD (default: yesterday)')

    def handle(self, *args, **options):
        today = timezone.localdate()
        if options.get('date'):
            try:
                service_date = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"invalid date {options['date']!r}, expected YYYY-MM-DD")
        else:
            service_date = today - timedelta(days=1)
        if service_date >= today:
            raise CommandError('only past days can be swept')

        swept = sweep_no_shows(service_date)
        self.stdout.write(self.style.SUCCESS(f"Marked {swept} entries from {service_date} as no-show"))
