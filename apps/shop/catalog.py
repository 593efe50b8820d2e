import logging
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.text import slugify

from .errors import NotFound, ValidationFailed
from .models import Category, Product
from .pricing import NotOnSale, OnSale, quantize

logger = logging.getLogger(__name__)


def get_product(product_id, *, for_update=False) -> Product:
    qs = Product.objects.select_for_update() if for_update else Product.objects
    try:
        return qs.get(pk=product_id)
    except Product.DoesNotExist:
        raise NotFound(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND") from None


def create_category(*, name: str, slug: str | None = None) -> Category:
    return Category.objects.create(name=name, slug=slug or slugify(name))


def create_product(*, name: str, base_price, stock: int = 0, category=None,
                   description: str = "", is_active: bool = True) -> Product:
    base_price = quantize(base_price)
    if base_price <= 0:
        raise ValidationFailed("Price must be positive", code="INVALID_PRICE")
    if stock < 0:
        raise ValidationFailed("Stock cannot be negative", code="INVALID_STOCK")
    return Product.objects.create(
        name=name,
        description=description,
        category=category,
        base_price=base_price,
        discounted_price=base_price,
        stock=stock,
        is_active=is_active,
    )


@transaction.atomic
def update_product_price(product_id, base_price, *, now: datetime | None = None) -> Product:
    """Change the base price and keep the discounted price in step with it.

    Cart lines keep their cached price until the next re-pricing sweep.
    """
    now = now or timezone.now()
    base_price = quantize(base_price)
    if base_price <= 0:
        raise ValidationFailed("Price must be positive", code="INVALID_PRICE")
    product = get_product(product_id, for_update=True)
    product.base_price = base_price
    fields = product.apply_sale_state(product.sale_state, now)
    product.save(update_fields=["base_price", *fields])
    return product


def set_product_active(product_id, active: bool) -> Product:
    product = get_product(product_id)
    product.is_active = active
    product.save(update_fields=["is_active", "updated_at"])
    return product


def restock_product(product_id, quantity: int) -> Product:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1", code="INVALID_QUANTITY")
    updated = Product.objects.filter(pk=product_id).update(stock=F("stock") + quantity)
    if not updated:
        raise NotFound(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
    return Product.objects.get(pk=product_id)


def start_product_sale(product, *, discount, start: datetime, end: datetime,
                       now: datetime | None = None) -> Product:
    """Put ``product`` on sale for [start, end); on_sale follows the clock."""
    now = now or timezone.now()
    try:
        state = OnSale(discount=Decimal(discount), start=start, end=end)
    except ValueError as exc:
        raise ValidationFailed(str(exc), code="INVALID_SALE") from exc
    fields = product.apply_sale_state(state, now)
    product.save(update_fields=fields)
    logger.info("product %s on sale %s%% from %s to %s", product.pk, discount, start, end)
    return product


def clear_product_sale(product) -> Product:
    fields = product.apply_sale_state(NotOnSale(), now=None)
    product.save(update_fields=fields)
    return product
