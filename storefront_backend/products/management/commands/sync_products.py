from django.core.management.base import BaseCommand, CommandError

from commerce.exceptions import CommerceError
from products.services.catalog_sync import sync_catalog


class Command(BaseCommand):
    help = "Pull the product catalog from BigCommerce into the local Product mirror."

    def add_arguments(self, parser):
        parser.add_argument(
            "--keep-missing",
            action="store_true",
            help="Do not deactivate local products missing from the remote catalog.",
        )

    def handle(self, *args, **options):
        try:
            result = sync_catalog(deactivate_missing=not options["keep_missing"])
        except CommerceError as e:
            raise CommandError(str(e)) from e

        self.stdout.write(
            self.style.SUCCESS(
                "Catalog synced: created={created} updated={updated} "
                "deactivated={deactivated} skipped={skipped}".format(**result.as_dict())
            )
        )
