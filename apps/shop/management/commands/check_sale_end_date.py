from django.core.management.base import BaseCommand

from apps.shop.sales import expire_product_sales


class Command(BaseCommand):
    help = "Take products whose sale end date has passed off sale."

    def handle(self, *args, **options):
        cleared = expire_product_sales()
        self.stdout.write(self.style.SUCCESS(f"{cleared} product(s) taken off sale."))
