from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from subscriptions.services.recurring import process_due


class Command(BaseCommand):
    help = "Create orders for every active recurring order that is due."

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            help="Process as of this date (YYYY-MM-DD). Defaults to today.",
        )

    def handle(self, *args, **options):
        today = None
        if options.get("date"):
            try:
                today = datetime.strptime(options["date"], "%Y-%m-%d").date()
            except ValueError as e:
                raise CommandError("--date must be YYYY-MM-DD") from e

        summary = process_due(today=today)
        self.stdout.write(
            self.style.SUCCESS(
                "Recurring orders: processed={processed} failed={failed} "
                "skipped={skipped} expired={expired}".format(**summary.as_dict())
            )
        )
