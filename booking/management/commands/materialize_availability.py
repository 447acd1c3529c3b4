"""
materialize_availability.py
---------------------------
Django management command that turns weekly schedule rules into dated
availability blocks, acting as the business owner.

Usage:
    python manage.py materialize_availability --business 1
    python manage.py materialize_availability --business 1 --days 14
    python manage.py materialize_availability --business 1 --start 2025-12-01 --days 7

Behavior:
- Safe to re-run: existing blocks are skipped, never changed.
- Default horizon comes from SCHEDULING['MATERIALIZE_HORIZON_DAYS'] (30).
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from booking.exceptions import SchedulingError
from booking.models import Business
from booking.services.materializer import Materializer


class Command(BaseCommand):
    help = "Generate availability blocks from weekly schedules for one business."

    def add_arguments(self, parser):
        parser.add_argument("--business", type=int, required=True, help="Business ID.")
        parser.add_argument("--days", type=int, default=None, help="Number of days to cover.")
        parser.add_argument(
            "--start",
            type=date.fromisoformat,
            default=None,
            help="First date (YYYY-MM-DD); defaults to today.",
        )

    def handle(self, *args, **options):
        business = Business.objects.select_related("owner").filter(pk=options["business"]).first()
        if business is None:
            raise CommandError(f"Business {options['business']} does not exist.")

        try:
            result = Materializer().materialize_horizon(
                business.owner,
                business,
                days=options["days"],
                start=options["start"],
            )
        except SchedulingError as e:
            raise CommandError(str(e))

        self.stdout.write(
            self.style.SUCCESS(
                f"Materialized {result['start']}..{result['end']}: "
                f"created={result['created']}, skipped={result['skipped']}, invalid={result['invalid']}"
            )
        )
