from django.core.management.base import BaseCommand

from apps.shop.sales import reprice_carts


class Command(BaseCommand):
    help = "Recompute cached cart line prices from current product prices and discounts."

    def handle(self, *args, **options):
        updated = reprice_carts()
        self.stdout.write(self.style.SUCCESS(f"Cart prices updated ({updated} line(s) changed)."))
