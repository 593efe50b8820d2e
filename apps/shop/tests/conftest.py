from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.db.models import F

from apps.shop.models import CartItem, FlashSale, Order, OrderItem, Product, UserAddress

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def shopper(db):
    return get_user_model().objects.create_user("shopper", "shopper@test.com", "pw")


@pytest.fixture
def address(shopper):
    return UserAddress.objects.create(
        user=shopper, home_number="12", street_number="4", block_number="7", city="Springfield"
    )


@pytest.fixture
def make_product(db):
    def make(name="Widget", price="10.00", stock=10, **extra):
        price = Decimal(price)
        extra.setdefault("discounted_price", price)
        return Product.objects.create(name=name, base_price=price, stock=stock, **extra)

    return make


@pytest.fixture
def make_sale_product(make_product):
    """A product on sale for a window around NOW."""

    def make(name="Sale widget", price="100.00", discount="20", stock=10,
             start=NOW - timedelta(hours=1), end=NOW + timedelta(hours=1), on_sale=True):
        price, discount = Decimal(price), Decimal(discount)
        return make_product(
            name=name,
            price=price,
            stock=stock,
            discount=discount,
            discounted_price=(price * (100 - discount) / 100).quantize(Decimal("0.01")),
            sale_start=start,
            sale_end=end,
            on_sale=on_sale,
        )

    return make


@pytest.fixture
def put_in_cart():
    def put(user, product, quantity, price=None):
        if price is None:
            price = product.base_price * quantity
        return CartItem.objects.create(user=user, product=product, quantity=quantity, price=Decimal(price))

    return put


@pytest.fixture
def make_order(shopper):
    def make(lines, status=Order.Status.PENDING):
        """``lines`` is a list of (product, quantity, line_price).

        Product stock is taken as already drained; ``sold`` is bumped to match.
        """
        order = Order.objects.create(
            user=shopper,
            total_price=sum((Decimal(p) for _, _, p in lines), Decimal("0.00")),
            status=status,
            shipping_address="Building number: 1, Street number: 2, Block number: 3, City: X",
        )
        for product, quantity, price in lines:
            OrderItem.objects.create(order=order, product=product, quantity=quantity, price=Decimal(price))
            Product.objects.filter(pk=product.pk).update(sold=F("sold") + quantity)
        return order

    return make


@pytest.fixture
def make_flash_sale(db):
    def make(name, start, end, discount="10", is_active=False, products=()):
        sale = FlashSale.objects.create(
            name=name, start_date=start, end_date=end, discount=Decimal(discount), is_active=is_active
        )
        if products:
            sale.products.set(products)
        return sale

    return make
