import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import IntegrityError, transaction

from .catalog import get_product
from .errors import Inactive, NotFound, OutOfStock, ValidationFailed
from .models import CartItem
from .pricing import line_price

logger = logging.getLogger(__name__)


@dataclass
class CartSummary:
    items: list = field(default_factory=list)
    total: Decimal = Decimal("0.00")

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


def _check_quantity(quantity):
    if int(quantity) < 1:
        raise ValidationFailed("Quantity must be at least 1", code="INVALID_QUANTITY")


def _check_sellable(product, quantity):
    if product.stock < quantity:
        raise OutOfStock(f"{product.name} is out of stock", code="PRODUCT_OUT_OF_STOCK")
    if not product.is_active:
        raise Inactive(f"{product.name} is not available", code="PRODUCT_NOT_ACTIVE")


def _find_line(user, product):
    return CartItem.objects.filter(user=user, product=product).first()


def add_to_cart(*, user, product_id, quantity: int) -> CartItem:
    _check_quantity(quantity)
    product = get_product(product_id)
    _check_sellable(product, quantity)

    item = _find_line(user, product)
    if item is None:
        try:
            with transaction.atomic():
                return CartItem.objects.create(
                    user=user, product=product, quantity=quantity, price=line_price(product, quantity)
                )
        except IntegrityError:
            # lost the insert race on (user, product); add onto the winner's line
            logger.info("cart line for user %s product %s created concurrently", user.pk, product.pk)
            item = CartItem.objects.get(user=user, product=product)

    # over-asking is capped at the stock on hand, not rejected
    item.quantity = min(item.quantity + quantity, product.stock)
    item.price = line_price(product, item.quantity)
    item.save(update_fields=["quantity", "price", "updated_at"])
    return item


def _get_cart_item(user, cart_item_id) -> CartItem:
    try:
        return CartItem.objects.select_related("product").get(pk=cart_item_id, user=user)
    except CartItem.DoesNotExist:
        raise NotFound("Cart item not found", code="CART_ITEM_NOT_FOUND") from None


def set_cart_quantity(*, user, cart_item_id, quantity: int) -> CartItem:
    _check_quantity(quantity)
    item = _get_cart_item(user, cart_item_id)
    product = item.product
    if not product.is_active:
        raise Inactive(f"{product.name} is not available", code="PRODUCT_NOT_ACTIVE")
    if product.stock < quantity:
        raise OutOfStock(f"{product.name} is out of stock", code="PRODUCT_OUT_OF_STOCK")

    item.quantity = min(quantity, product.stock)
    item.price = line_price(product, item.quantity)
    item.save(update_fields=["quantity", "price", "updated_at"])
    return item


def remove_from_cart(*, user, cart_item_id) -> None:
    # stock is only touched at checkout
    _get_cart_item(user, cart_item_id).delete()


def list_cart(*, user) -> CartSummary:
    items = list(
        CartItem.objects.select_related("product")
        .filter(user=user, product__is_active=True)
        .order_by("id")
    )
    total = sum((item.price for item in items), Decimal("0.00"))
    return CartSummary(items=items, total=total)
