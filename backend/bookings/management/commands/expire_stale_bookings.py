from django.conf import settings
from django.core.management.base import BaseCommand

from services.booking_management import expire_stale_bookings, stale_pending_bookings


class Command(BaseCommand):
    help = "Cancel pending bookings whose route already departed and return their seats."

    def add_arguments(self, parser):
        parser.add_argument(
            "--grace-minutes",
            type=int,
            default=settings.STALE_BOOKING_GRACE_MINUTES,
            help="Minutes after departure before a pending booking expires (default: %(default)s).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show how many bookings would expire without changing them.",
        )

    def handle(self, *args, **options):
        grace_minutes = options["grace_minutes"]

        if options["dry_run"]:
            count = stale_pending_bookings(grace_minutes).count()
            self.stdout.write(
                self.style.WARNING(f"DRY RUN: Would expire {count} pending booking(s).")
            )
            return

        expired_count = expire_stale_bookings(grace_minutes=grace_minutes)
        self.stdout.write(
            self.style.SUCCESS(f"Expired {expired_count} stale pending booking(s).")
        )
