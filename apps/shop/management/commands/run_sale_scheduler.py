from django.core.management.base import BaseCommand

from apps.shop.scheduler import SaleScheduler


class Command(BaseCommand):
    help = "Run the flash sale, sale expiry and cart re-pricing sweeps on their configured intervals."

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="run every due sweep once and exit")

    def handle(self, *args, **options):
        scheduler = SaleScheduler()
        if options["once"]:
            ran = scheduler.tick()
            self.stdout.write(", ".join(ran) or "nothing due")
            return
        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            self.stdout.write("scheduler stopped")
