import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.db.models import F, Sum

from .catalog import get_product
from .conf import shop_setting
from .errors import (
    AddressNotFound,
    AllItemsSkipped,
    Conflict,
    EmptyCart,
    Inactive,
    LowStock,
    NotAuthenticated,
    NotFound,
    OutOfStock,
    TransactionFailed,
    ValidationFailed,
)
from .models import CartItem, Order, OrderItem, Product
from .pricing import line_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedLine:
    product_id: int
    requested: int
    available: int


@dataclass
class RevisionResult:
    order: Order
    skipped: list = field(default_factory=list)


def _drain_stock(product_id, quantity: int) -> None:
    # decrement in the database, never from a stale in-memory value
    Product.objects.filter(pk=product_id).update(stock=F("stock") - quantity, sold=F("sold") + quantity)


def _return_stock(product_id, quantity: int) -> None:
    Product.objects.filter(pk=product_id).update(stock=F("stock") + quantity, sold=F("sold") - quantity)


def _create_order_item(order, product_id, quantity: int, price) -> OrderItem:
    return OrderItem.objects.create(order=order, product_id=product_id, quantity=quantity, price=price)


def _recompute_total(order) -> Order:
    total = order.items.aggregate(total=Sum("price"))["total"] or Decimal("0.00")
    order.total_price = total
    order.save(update_fields=["total_price", "updated_at"])
    return order


def _lock_products(product_ids) -> dict:
    # always lock in primary key order
    rows = Product.objects.select_for_update().filter(pk__in=set(product_ids)).order_by("pk")
    return {p.pk: p for p in rows}


# ---------------------------------------------------------------- checkout


def checkout(*, user, payment_method: str = Order.PaymentMethod.CASH) -> Order:
    """Turn the user's whole cart into a pending order, or change nothing.

    Stock, sold counters, order rows and cart rows are written in one
    transaction; a database failure anywhere rolls all of it back and is
    reported as ``TransactionFailed``.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise NotAuthenticated()
    if payment_method not in Order.PaymentMethod.values:
        raise ValidationFailed(f"Unknown payment method {payment_method!r}", code="INVALID_PAYMENT_METHOD")

    try:
        order = _place_order(user, payment_method)
    except DatabaseError as exc:
        logger.exception("checkout for user %s rolled back", user.pk)
        raise TransactionFailed("Error occurred while creating order") from exc
    return order


@transaction.atomic
def _place_order(user, payment_method) -> Order:
    cart_items = list(CartItem.objects.filter(user=user).order_by("id"))
    if not cart_items:
        raise EmptyCart()
    address = user.addresses.order_by("id").first()
    if address is None:
        raise AddressNotFound()

    products = _lock_products(item.product_id for item in cart_items)
    threshold = shop_setting("MINIMUM_STOCK_THRESHOLD")
    for item in cart_items:
        product = products[item.product_id]
        if product.stock < threshold:
            raise LowStock(f"{product.name} is out of stock, remove it from your cart", code="OUT_OF_STOCK")
        if product.stock < item.quantity:
            raise OutOfStock(f"Only {product.stock} of {product.name} left", code="OUT_OF_STOCK")

    order = Order.objects.create(
        user=user,
        total_price=sum((item.price for item in cart_items), Decimal("0.00")),
        status=Order.Status.PENDING,
        payment_method=payment_method,
        shipping_address=address.as_shipping_address(),
    )
    for item in cart_items:
        _create_order_item(order, item.product_id, item.quantity, item.price)
        _drain_stock(item.product_id, item.quantity)
        item.delete()

    order_id, total = order.pk, order.total_price
    transaction.on_commit(lambda: logger.info("order %s created for %s (total %s)", order_id, user.pk, total))
    return order


# ----------------------------------------------------------------- queries


def list_orders(*, status: str | None = None, user=None):
    qs = Order.objects.prefetch_related("items")
    if status is not None:
        if status not in Order.Status.values:
            raise ValidationFailed(f"Invalid status {status!r}", code="INVALID_STATUS")
        qs = qs.filter(status=status)
    if user is not None:
        qs = qs.filter(user=user)
    return qs.order_by("-created_at", "-id")


def get_order(order_id, *, user=None, for_update=False) -> Order:
    qs = Order.objects.select_for_update() if for_update else Order.objects.prefetch_related("items__product")
    if user is not None:
        qs = qs.filter(user=user)
    try:
        return qs.get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFound(f"Order {order_id} not found", code="ORDER_NOT_FOUND") from None


def _require_pending(order):
    if not order.is_pending:
        raise ValidationFailed(f"Order {order.pk} is {order.status}", code="ORDER_NOT_PENDING")


@transaction.atomic
def set_order_status(*, order_id, status: str) -> Order:
    if status not in Order.Status.values:
        raise ValidationFailed(f"Invalid status {status!r}", code="INVALID_STATUS")
    order = get_order(order_id, for_update=True)
    if order.status == status:
        raise Conflict(f"Order {order.pk} is already {status}", code=f"ORDER_ALREADY_{status.upper()}")
    # pending -> completed | canceled, nothing else
    _require_pending(order)
    order.status = status
    order.save(update_fields=["status", "updated_at"])
    logger.info("order %s moved to %s", order.pk, status)
    return order


# ---------------------------------------------------------------- revision


def _normalize_lines(lines) -> list:
    normalized = []
    seen = set()
    for line in lines:
        if isinstance(line, dict):
            product_id, quantity = line["product_id"], line["quantity"]
        else:
            product_id, quantity = line
        quantity = int(quantity)
        if quantity < 1:
            raise ValidationFailed("Quantity must be at least 1", code="INVALID_QUANTITY")
        if product_id in seen:
            raise ValidationFailed(f"Product {product_id} submitted twice", code="DUPLICATE_PRODUCT")
        seen.add(product_id)
        normalized.append((product_id, quantity))
    if not normalized:
        raise ValidationFailed("At least one item is required", code="NO_ITEMS")
    return normalized


def revise_order(*, order_id, lines) -> RevisionResult:
    """Replace the items of a pending order with ``lines`` at today's prices.

    Stock moves by the difference between the old and new quantity, and
    items whose product is not submitted are deleted with their units
    returned to stock. A line whose increase exceeds the stock on hand is
    reported in ``skipped`` and leaves the existing item untouched. If every
    line is skipped nothing is written.
    """
    lines = _normalize_lines(lines)
    try:
        return _apply_revision(order_id, lines)
    except DatabaseError as exc:
        logger.exception("revision of order %s rolled back", order_id)
        raise TransactionFailed("Error occurred while revising order") from exc


@transaction.atomic
def _apply_revision(order_id, lines) -> RevisionResult:
    order = get_order(order_id, for_update=True)
    _require_pending(order)

    existing = {item.product_id: item for item in order.items.all()}
    submitted = [product_id for product_id, _ in lines]
    products = _lock_products([*submitted, *existing])
    for product_id in submitted:
        if product_id not in products:
            raise NotFound(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")

    skipped = []
    for product_id, quantity in lines:
        product = products[product_id]
        item = existing.get(product_id)
        change = quantity - (item.quantity if item else 0)
        if change > 0 and product.stock < change:
            skipped.append(SkippedLine(product_id=product_id, requested=quantity, available=product.stock))
            continue
        price = line_price(product, quantity)
        if item is None:
            _create_order_item(order, product_id, quantity, price)
        else:
            item.quantity = quantity
            item.price = price
            item.save(update_fields=["quantity", "price"])
        if change > 0:
            _drain_stock(product_id, change)
        elif change < 0:
            _return_stock(product_id, -change)

    if len(skipped) == len(lines):
        raise AllItemsSkipped(skipped)

    for item in order.items.exclude(product_id__in=submitted):
        _return_stock(item.product_id, item.quantity)
        item.delete()
    _recompute_total(order)
    if skipped:
        logger.warning("order %s revised, skipped %s", order.pk, [s.product_id for s in skipped])
    return RevisionResult(order=order, skipped=skipped)


@transaction.atomic
def add_order_item(*, order_id, product_id, quantity: int) -> OrderItem:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1", code="INVALID_QUANTITY")
    order = get_order(order_id, for_update=True)
    _require_pending(order)
    product = get_product(product_id, for_update=True)
    if not product.is_active:
        raise Inactive(f"{product.name} is not available", code="PRODUCT_NOT_ACTIVE")
    if order.items.filter(product=product).exists():
        raise Conflict(f"{product.name} is already in the order", code="PRODUCT_ALREADY_IN_ORDER")
    if product.stock < quantity + shop_setting("MINIMUM_STOCK_THRESHOLD"):
        raise LowStock(f"Not enough {product.name} in stock", code="OUT_OF_STOCK")

    item = _create_order_item(order, product.pk, quantity, line_price(product, quantity))
    _drain_stock(product.pk, quantity)
    _recompute_total(order)
    return item


@transaction.atomic
def remove_order_item(*, order_id, item_id) -> Order:
    order = get_order(order_id, for_update=True)
    _require_pending(order)
    item = order.items.filter(pk=item_id).first()
    if item is None:
        raise NotFound(f"Item {item_id} is not part of order {order.pk}", code="ORDER_ITEM_NOT_FOUND")
    if order.items.count() <= 1:
        raise ValidationFailed("An order must keep at least one item", code="LAST_ORDER_ITEM")
    _lock_products([item.product_id])
    _return_stock(item.product_id, item.quantity)
    item.delete()
    return _recompute_total(order)
