"""Time driven sweeps over sale state.

Each sweep takes the current time as ``now`` so it can be driven by the
scheduler, a management command or a test with a frozen clock.
"""
import logging
from datetime import datetime

from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .conf import shop_setting
from .db import retry_on_tx_failure
from .models import ActiveFlashSale, CartItem, FlashSale, Product, SystemPerformanceLog
from .pricing import line_price

logger = logging.getLogger(__name__)

LEGACY = "legacy"
EXCLUSIVE = "exclusive"
ACTIVATION_MODES = (LEGACY, EXCLUSIVE)


def record_event(message: str, *, context=None, log_type="info", status_code=200):
    SystemPerformanceLog.objects.create(
        log_type=log_type, message=message[:255], context=context, status_code=status_code
    )


def _window_context(sale):
    return {
        "flash_sale_id": sale.pk,
        "start_date": sale.start_date.isoformat(),
        "end_date": sale.end_date.isoformat(),
    }


def put_sale_products_on_sale(sale, now: datetime) -> int:
    """Flip on_sale for the sale's products whose own window has opened."""
    return sale.products.filter(
        on_sale=False, discount__gt=0, sale_start__lte=now, sale_end__gt=now
    ).update(on_sale=True, updated_at=now)


# --------------------------------------------------- flash sale activation


def activate_flash_sales(*, now: datetime | None = None, mode: str | None = None):
    """Make the flash sale whose window contains ``now`` the active one.

    Returns the activated sale or ``None``.
    """
    now = now or timezone.now()
    mode = mode or shop_setting("FLASH_SALE_ACTIVATION_MODE")
    if mode == LEGACY:
        return _activate_partial_scan(now)
    if mode == EXCLUSIVE:
        return _activate_exclusive(now)
    raise ImproperlyConfigured(f"FLASH_SALE_ACTIVATION_MODE must be one of {ACTIVATION_MODES}, got {mode!r}")


def _activate_partial_scan(now):
    # Walks sales by id, switching off each one until the first match, then
    # stops. Sales after the match keep whatever flag they had.
    for sale in FlashSale.objects.order_by("id"):
        if sale.window_contains(now):
            sale.is_active = True
            sale.save(update_fields=["is_active", "updated_at"])
            put_sale_products_on_sale(sale, now)
            logger.info("flash sale %s (%s) activated", sale.pk, sale.name)
            record_event(f"Flash sale {sale.name} has been activated.", context=_window_context(sale))
            return sale

        sale.is_active = False
        sale.save(update_fields=["is_active", "updated_at"])
        logger.info("flash sale %s deactivated", sale.pk)
        record_event(f"Flash sale {sale.pk} has been deactivated.", context=_window_context(sale))
    return None


@transaction.atomic
def _activate_exclusive(now):
    pointer = ActiveFlashSale.load_for_update()
    current = (
        FlashSale.objects.select_for_update()
        .filter(start_date__lte=now, end_date__gt=now)
        .order_by("start_date", "id")
        .first()
    )
    others = FlashSale.objects.filter(is_active=True)
    if current is not None:
        others = others.exclude(pk=current.pk)
    switched_off = others.update(is_active=False, updated_at=now)

    if current is not None and not current.is_active:
        current.is_active = True
        current.save(update_fields=["is_active", "updated_at"])
    if current is not None:
        put_sale_products_on_sale(current, now)

    if pointer.flash_sale_id != (current.pk if current else None):
        logger.info("active flash sale moved from %s to %s", pointer.flash_sale_id, current.pk if current else None)
        pointer.flash_sale = current
        pointer.save()
    record_event(
        "Flash sale activation sweep finished.",
        context={"active_flash_sale_id": current.pk if current else None, "deactivated": switched_off},
    )
    return current


# ------------------------------------------------------------ sale expiry


@retry_on_tx_failure()
@transaction.atomic
def expire_product_sales(*, now: datetime | None = None) -> int:
    """Take every product whose sale window has closed off sale.

    Never turns a sale on. Returns the number of products cleared.
    """
    now = now or timezone.now()
    expired_ids = list(
        Product.objects.select_for_update().filter(on_sale=True, sale_end__lte=now).values_list("pk", flat=True)
    )
    if not expired_ids:
        return 0
    Product.objects.filter(pk__in=expired_ids).update(
        on_sale=False,
        discount=0,
        sale_start=None,
        sale_end=None,
        discounted_price=F("base_price"),
        updated_at=now,
    )
    for product_id in expired_ids:
        logger.info("product %s is no longer on sale", product_id)
    record_event(f"{len(expired_ids)} product(s) are no longer on sale.", context={"product_ids": expired_ids})
    return len(expired_ids)


# ---------------------------------------------------------- cart pricing


@retry_on_tx_failure()
@transaction.atomic
def reprice_carts(*, now: datetime | None = None) -> int:
    """Refresh every cached cart line price from current product state.

    Returns the number of lines whose price changed.
    """
    changed = []
    for item in CartItem.objects.select_related("product").order_by("id"):
        price = line_price(item.product, item.quantity)
        if item.price != price:
            item.price = price
            changed.append(item)
    if changed:
        CartItem.objects.bulk_update(changed, ["price"], batch_size=500)
    logger.info("cart re-pricing updated %d line(s)", len(changed))
    record_event("Cart prices updated successfully.", context={"updated": len(changed)}, status_code=201)
    return len(changed)
