from decimal import Decimal

import pytest
from django.db import DatabaseError

from apps.shop import orders
from apps.shop.errors import (
    AllItemsSkipped,
    Conflict,
    Inactive,
    LowStock,
    NotFound,
    TransactionFailed,
    ValidationFailed,
)
from apps.shop.models import Order, OrderItem, Product

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def threshold(settings):
    settings.SHOP = {"MINIMUM_STOCK_THRESHOLD": 5}


# ---------------------------------------------------------------- revision


def test_revision_with_every_line_short_changes_nothing(make_product, make_order):
    kept = make_product(name="kept", price="10.00", stock=10)
    scarce = make_product(name="scarce", price="5.00", stock=2)
    empty = make_product(name="empty", price="5.00", stock=0)
    order = make_order([(kept, 1, "10.00")])

    with pytest.raises(AllItemsSkipped) as exc:
        orders.revise_order(order_id=order.pk, lines=[(scarce.pk, 3), (empty.pk, 1)])

    assert exc.value.code == "ALL_ITEMS_SKIPPED_LOW_STOCK"
    assert [s.product_id for s in exc.value.skipped] == [scarce.pk, empty.pk]
    order.refresh_from_db()
    assert order.total_price == Decimal("10.00")
    assert list(order.items.values_list("product_id", "quantity")) == [(kept.pk, 1)]
    assert Product.objects.get(pk=scarce.pk).stock == 2


def test_revision_replaces_lines_and_reports_skips(make_product, make_order):
    updated = make_product(name="updated", price="10.00", stock=10)
    dropped = make_product(name="dropped", price="3.00", stock=10)
    short = make_product(name="short", price="7.00", stock=0)
    added = make_product(name="added", price="2.50", stock=4)
    order = make_order([(updated, 1, "10.00"), (dropped, 2, "6.00"), (short, 1, "7.00")])

    result = orders.revise_order(
        order_id=order.pk, lines=[(updated.pk, 3), (short.pk, 2), (added.pk, 4)]
    )

    assert result.skipped == [orders.SkippedLine(product_id=short.pk, requested=2, available=0)]
    items = {i.product_id: i for i in OrderItem.objects.filter(order=order)}
    assert set(items) == {updated.pk, short.pk, added.pk}
    assert (items[updated.pk].quantity, items[updated.pk].price) == (3, Decimal("30.00"))
    assert (items[added.pk].quantity, items[added.pk].price) == (4, Decimal("10.00"))
    # the skipped product keeps its old line untouched
    assert (items[short.pk].quantity, items[short.pk].price) == (1, Decimal("7.00"))

    result.order.refresh_from_db()
    assert result.order.total_price == Decimal("47.00")

    stock = {p.pk: (p.stock, p.sold) for p in Product.objects.all()}
    assert stock[updated.pk] == (8, 3)
    assert stock[added.pk] == (0, 4)
    assert stock[dropped.pk] == (12, 0)
    assert stock[short.pk] == (0, 1)


def test_resubmitting_same_lines_leaves_stock_alone(make_product, make_order):
    product = make_product(price="10.00", stock=10)
    order = make_order([(product, 3, "30.00")])

    orders.revise_order(order_id=order.pk, lines=[(product.pk, 3)])

    product.refresh_from_db()
    assert (product.stock, product.sold) == (10, 3)
    assert order.items.get().quantity == 3


def test_lowering_quantity_returns_units(make_product, make_order):
    product = make_product(price="10.00", stock=1)
    order = make_order([(product, 5, "50.00")])

    result = orders.revise_order(order_id=order.pk, lines=[(product.pk, 2)])

    product.refresh_from_db()
    assert (product.stock, product.sold) == (4, 2)
    assert result.order.total_price == Decimal("20.00")


def test_raising_quantity_only_needs_stock_for_the_increase(make_product, make_order):
    product = make_product(price="1.00", stock=2)
    order = make_order([(product, 3, "3.00")])

    result = orders.revise_order(order_id=order.pk, lines=[(product.pk, 5)])

    assert result.skipped == []
    product.refresh_from_db()
    assert (product.stock, product.sold) == (0, 5)


@pytest.mark.django_db(transaction=True)
def test_revision_rolls_back_when_stock_update_fails(make_product, make_order, monkeypatch):
    first = make_product(name="first", price="1.00", stock=10)
    second = make_product(name="second", price="1.00", stock=10)
    order = make_order([(first, 1, "1.00"), (second, 1, "1.00")])
    real_drain = orders._drain_stock
    calls = []

    def drain_then_fail(product_id, quantity):
        calls.append(product_id)
        if len(calls) == 2:
            raise DatabaseError("lost connection")
        real_drain(product_id, quantity)

    monkeypatch.setattr(orders, "_drain_stock", drain_then_fail)

    with pytest.raises(TransactionFailed):
        orders.revise_order(order_id=order.pk, lines=[(first.pk, 2), (second.pk, 3)])

    assert len(calls) == 2
    order.refresh_from_db()
    assert order.total_price == Decimal("2.00")
    assert sorted(order.items.values_list("product_id", "quantity", "price")) == [
        (first.pk, 1, Decimal("1.00")),
        (second.pk, 1, Decimal("1.00")),
    ]
    assert {p.pk: (p.stock, p.sold) for p in Product.objects.all()} == {
        first.pk: (10, 1),
        second.pk: (10, 1),
    }


def test_revision_prices_lines_at_current_sale_price(make_sale_product, make_product, make_order):
    product = make_sale_product(price="100.00", discount="20", stock=10)
    old = make_product(name="old", stock=10)
    order = make_order([(old, 1, "10.00")])

    result = orders.revise_order(order_id=order.pk, lines=[{"product_id": product.pk, "quantity": 2}])

    assert result.order.items.get().price == Decimal("160.00")
    assert result.order.total_price == Decimal("160.00")


def test_revision_of_completed_order_is_refused(make_product, make_order):
    product = make_product(stock=10)
    order = make_order([(product, 1, "10.00")], status=Order.Status.COMPLETED)

    with pytest.raises(ValidationFailed) as exc:
        orders.revise_order(order_id=order.pk, lines=[(product.pk, 2)])
    assert exc.value.code == "ORDER_NOT_PENDING"


def test_revision_input_errors(make_product, make_order):
    product = make_product(stock=10)
    order = make_order([(product, 1, "10.00")])

    with pytest.raises(ValidationFailed):
        orders.revise_order(order_id=order.pk, lines=[])
    with pytest.raises(ValidationFailed):
        orders.revise_order(order_id=order.pk, lines=[(product.pk, 1), (product.pk, 2)])
    with pytest.raises(NotFound):
        orders.revise_order(order_id=order.pk, lines=[(987654, 1)])
    with pytest.raises(NotFound):
        orders.revise_order(order_id=987654, lines=[(product.pk, 1)])


# ------------------------------------------------------ single line edits


def test_add_order_item_requires_threshold_headroom(make_product, make_order):
    base = make_product(name="base", stock=10)
    order = make_order([(base, 1, "10.00")])
    tight = make_product(name="tight", price="4.00", stock=6)

    with pytest.raises(LowStock):
        orders.add_order_item(order_id=order.pk, product_id=tight.pk, quantity=2)

    item = orders.add_order_item(order_id=order.pk, product_id=tight.pk, quantity=1)

    assert item.price == Decimal("4.00")
    order.refresh_from_db()
    assert order.total_price == Decimal("14.00")
    tight.refresh_from_db()
    assert (tight.stock, tight.sold) == (5, 1)


def test_add_order_item_conflicts_and_inactive(make_product, make_order):
    base = make_product(name="base", stock=20)
    order = make_order([(base, 1, "10.00")])
    hidden = make_product(name="hidden", stock=20, is_active=False)

    with pytest.raises(Conflict):
        orders.add_order_item(order_id=order.pk, product_id=base.pk, quantity=1)
    with pytest.raises(Inactive):
        orders.add_order_item(order_id=order.pk, product_id=hidden.pk, quantity=1)


def test_remove_order_item_keeps_last_item(make_product, make_order):
    a = make_product(name="a")
    b = make_product(name="b")
    order = make_order([(a, 1, "10.00"), (b, 2, "20.00")])
    item_b = order.items.get(product=b)

    order = orders.remove_order_item(order_id=order.pk, item_id=item_b.pk)
    assert order.total_price == Decimal("10.00")
    b.refresh_from_db()
    assert (b.stock, b.sold) == (12, 0)

    last = order.items.get()
    with pytest.raises(ValidationFailed) as exc:
        orders.remove_order_item(order_id=order.pk, item_id=last.pk)
    assert exc.value.code == "LAST_ORDER_ITEM"


def test_remove_order_item_from_other_order(make_product, make_order):
    a = make_product(name="a")
    first = make_order([(a, 1, "10.00")])
    second = make_order([(a, 1, "10.00")])

    with pytest.raises(NotFound):
        orders.remove_order_item(order_id=first.pk, item_id=second.items.get().pk)


# ----------------------------------------------------------- status, lists


def test_status_moves_out_of_pending_once(make_product, make_order):
    order = make_order([(make_product(), 1, "10.00")])

    orders.set_order_status(order_id=order.pk, status="completed")
    with pytest.raises(Conflict) as exc:
        orders.set_order_status(order_id=order.pk, status="completed")
    assert exc.value.code == "ORDER_ALREADY_COMPLETED"
    with pytest.raises(ValidationFailed):
        orders.set_order_status(order_id=order.pk, status="canceled")


def test_status_must_be_known(make_product, make_order):
    order = make_order([(make_product(), 1, "10.00")])
    with pytest.raises(ValidationFailed):
        orders.set_order_status(order_id=order.pk, status="shipped")


def test_list_orders_filters_by_status_and_user(shopper, django_user_model, make_product, make_order):
    product = make_product()
    pending = make_order([(product, 1, "10.00")])
    done = make_order([(product, 1, "10.00")], status=Order.Status.COMPLETED)
    stranger = django_user_model.objects.create_user("stranger", "s@test.com", "pw")

    assert list(orders.list_orders(status="pending")) == [pending]
    assert list(orders.list_orders(status="completed")) == [done]
    assert set(orders.list_orders(user=shopper)) == {pending, done}
    assert list(orders.list_orders(user=stranger)) == []
    with pytest.raises(ValidationFailed):
        orders.list_orders(status="lost")


def test_get_order_is_scoped_to_owner(django_user_model, make_product, make_order):
    order = make_order([(make_product(), 1, "10.00")])
    stranger = django_user_model.objects.create_user("stranger", "s@test.com", "pw")

    with pytest.raises(NotFound):
        orders.get_order(order.pk, user=stranger)
    assert orders.get_order(order.pk).pk == order.pk
