import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from .catalog import clear_product_sale, get_product, start_product_sale
from .errors import Conflict, Inactive, NotFound, ValidationFailed
from .models import ActiveFlashSale, FlashSale
from .sales import put_sale_products_on_sale

logger = logging.getLogger(__name__)


def get_flash_sale(flash_sale_id, *, for_update=False) -> FlashSale:
    qs = FlashSale.objects.select_for_update() if for_update else FlashSale.objects.prefetch_related("products")
    try:
        return qs.get(pk=flash_sale_id)
    except FlashSale.DoesNotExist:
        raise NotFound(f"Flash sale {flash_sale_id} not found", code="FLASH_SALE_NOT_FOUND") from None


def list_flash_sales():
    return FlashSale.objects.prefetch_related("products").order_by("-created_at", "-id")


def _validate_discount(discount) -> Decimal:
    try:
        discount = Decimal(discount)
    except (InvalidOperation, TypeError):
        raise ValidationFailed("Discount must be a number", code="DISCOUNT_OUT_OF_RANGE") from None
    if not (Decimal("0") < discount <= Decimal("100")):
        raise ValidationFailed("Discount must be above 0 and at most 100", code="DISCOUNT_OUT_OF_RANGE")
    return discount


def _validate_window(start_date: datetime, end_date: datetime, now: datetime):
    if start_date < now or end_date < now:
        raise ValidationFailed("Start and end dates cannot be in the past", code="DATE_IS_PAST")
    if end_date <= start_date:
        raise ValidationFailed("End date must be after start date", code="END_DATE_BEFORE_START_DATE")


def _check_overlap(start_date, end_date, *, exclude_id=None):
    overlapping = FlashSale.objects.filter(start_date__lt=end_date, end_date__gt=start_date)
    if exclude_id is not None:
        overlapping = overlapping.exclude(pk=exclude_id)
    clash = overlapping.order_by("start_date").first()
    if clash is not None:
        raise Conflict(f"Dates overlap with flash sale {clash.name}", code="START_DATE_OVERLAP")


def _load_products(product_ids) -> list:
    if not product_ids:
        raise ValidationFailed("A flash sale needs at least one product", code="NO_PRODUCTS")
    products = []
    for product_id in dict.fromkeys(product_ids):
        product = get_product(product_id, for_update=True)
        if not product.is_active:
            raise Inactive(f"{product.name} is not active", code="PRODUCT_NOT_ACTIVE")
        products.append(product)
    return products


def _attach(sale, products, now):
    sale.products.set(products)
    for product in products:
        start_product_sale(product, discount=sale.discount, start=sale.start_date, end=sale.end_date, now=now)


@transaction.atomic
def create_flash_sale(*, name: str, start_date: datetime, end_date: datetime, discount,
                      product_ids, description: str | None = None, now: datetime | None = None) -> FlashSale:
    now = now or timezone.now()
    discount = _validate_discount(discount)
    _validate_window(start_date, end_date, now)
    products = _load_products(product_ids)
    _check_overlap(start_date, end_date)

    sale = FlashSale.objects.create(
        name=name,
        description=description or None,
        discount=discount,
        start_date=start_date,
        end_date=end_date,
    )
    _attach(sale, products, now)
    logger.info("flash sale %s created for %d product(s)", sale.pk, len(products))
    return sale


@transaction.atomic
def update_flash_sale(*, flash_sale_id, name: str, start_date: datetime, end_date: datetime, discount,
                      product_ids, description: str | None = None, now: datetime | None = None) -> FlashSale:
    now = now or timezone.now()
    sale = get_flash_sale(flash_sale_id, for_update=True)
    discount = _validate_discount(discount)
    _validate_window(start_date, end_date, now)
    products = _load_products(product_ids)
    _check_overlap(start_date, end_date, exclude_id=sale.pk)

    keep = {p.pk for p in products}
    for dropped in sale.products.exclude(pk__in=keep):
        clear_product_sale(dropped)

    sale.name = name
    sale.description = description or None
    sale.discount = discount
    sale.start_date = start_date
    sale.end_date = end_date
    sale.save()
    _attach(sale, products, now)
    return sale


@transaction.atomic
def toggle_flash_sale(*, flash_sale_id, now: datetime | None = None) -> FlashSale:
    """Flip a sale's flag by hand. Turning one on turns every other one off."""
    now = now or timezone.now()
    sale = get_flash_sale(flash_sale_id, for_update=True)
    pointer = ActiveFlashSale.load_for_update()

    if sale.is_active:
        sale.is_active = False
        if pointer.flash_sale_id == sale.pk:
            pointer.flash_sale = None
    else:
        FlashSale.objects.filter(is_active=True).exclude(pk=sale.pk).update(is_active=False, updated_at=now)
        sale.is_active = True
        pointer.flash_sale = sale
        put_sale_products_on_sale(sale, now)

    sale.save(update_fields=["is_active", "updated_at"])
    pointer.save()
    logger.info("flash sale %s toggled to %s", sale.pk, sale.is_active)
    return sale


@transaction.atomic
def delete_flash_sale(*, flash_sale_id) -> None:
    sale = get_flash_sale(flash_sale_id, for_update=True)
    # products still carrying this sale's window lose the discount with it
    for product in sale.products.filter(sale_start=sale.start_date, sale_end=sale.end_date):
        clear_product_sale(product)
    sale.delete()
    logger.info("flash sale %s deleted", flash_sale_id)
