from django.core.management.base import BaseCommand

from apps.shop.sales import ACTIVATION_MODES, activate_flash_sales


class Command(BaseCommand):
    help = "Activate the flash sale whose window contains now and deactivate the others."

    def add_arguments(self, parser):
        parser.add_argument("--mode", choices=ACTIVATION_MODES, help="override FLASH_SALE_ACTIVATION_MODE")

    def handle(self, *args, **options):
        sale = activate_flash_sales(mode=options.get("mode"))
        if sale is None:
            self.stdout.write("No flash sale is running right now.")
        else:
            self.stdout.write(self.style.SUCCESS(f"Flash sale {sale.name} is active."))
