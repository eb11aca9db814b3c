from django.core.management.base import BaseCommand

from checkout.services.checkout import expire_stale_sessions


class Command(BaseCommand):
    help = "Mark unfinished checkout sessions past their expiry as abandoned."

    def handle(self, *args, **options):
        count = expire_stale_sessions()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} checkout session(s)."))
