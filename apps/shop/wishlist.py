from django.db import transaction

from .catalog import get_product
from .errors import Conflict, NotFound
from .models import CartItem, WishlistItem
from .pricing import line_price


def add_to_wishlist(*, user, product_id) -> WishlistItem:
    product = get_product(product_id)
    if WishlistItem.objects.filter(user=user, product=product).exists():
        raise Conflict(f"{product.name} is already in your wishlist", code="ALREADY_IN_WISHLIST")
    return WishlistItem.objects.create(user=user, product=product)


def remove_from_wishlist(*, user, product_id) -> None:
    deleted, _ = WishlistItem.objects.filter(user=user, product_id=product_id).delete()
    if not deleted:
        raise NotFound("Product is not in your wishlist", code="WISHLIST_ITEM_NOT_FOUND")


def list_wishlist(*, user) -> list:
    return [
        item.product
        for item in WishlistItem.objects.select_related("product")
        .filter(user=user, product__is_active=True)
        .order_by("id")
    ]


@transaction.atomic
def move_wishlist_to_cart(*, user) -> int:
    """Add one unit of every sellable wishlisted product to the cart.

    Returns how many cart lines were created or bumped.
    """
    moved = 0
    for wished in WishlistItem.objects.select_related("product").filter(user=user).order_by("id"):
        product = wished.product
        if not product.is_active or product.stock < 1:
            continue
        item = CartItem.objects.filter(user=user, product=product).first()
        if item is None:
            CartItem.objects.create(user=user, product=product, quantity=1, price=line_price(product, 1))
        else:
            item.quantity = min(item.quantity + 1, product.stock)
            item.price = line_price(product, item.quantity)
            item.save(update_fields=["quantity", "price", "updated_at"])
        moved += 1
    return moved
