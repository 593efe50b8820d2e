from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from apps.shop.models import Product
from apps.shop.pricing import (
    NotOnSale,
    OnSale,
    discounted_price_for,
    effective_unit_price,
    line_price,
    sale_state_for,
)

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=dt_timezone.utc)
HOUR = timedelta(hours=1)


def test_discounted_price_is_base_times_remaining_percent():
    assert discounted_price_for(Decimal("200.00"), Decimal("25")) == Decimal("150.00")
    assert discounted_price_for(Decimal("9.99"), Decimal("10")) == Decimal("8.99")


def test_effective_unit_price_follows_on_sale_flag():
    product = Product(base_price=Decimal("50.00"), discounted_price=Decimal("40.00"), on_sale=True)
    assert effective_unit_price(product) == Decimal("40.00")

    product.on_sale = False
    assert effective_unit_price(product) == Decimal("50.00")


def test_line_price_multiplies_effective_price():
    product = Product(base_price=Decimal("12.50"), discounted_price=Decimal("12.50"))
    assert line_price(product, 3) == Decimal("37.50")


@pytest.mark.parametrize("discount", ["0", "-5", "100.01"])
def test_on_sale_rejects_discount_out_of_range(discount):
    with pytest.raises(ValueError):
        OnSale(discount=Decimal(discount), start=NOW, end=NOW + HOUR)


def test_on_sale_rejects_empty_window():
    with pytest.raises(ValueError):
        OnSale(discount=Decimal("10"), start=NOW, end=NOW)


def test_sale_window_is_half_open():
    state = OnSale(discount=Decimal("10"), start=NOW, end=NOW + HOUR)
    assert state.contains(NOW)
    assert state.contains(NOW + HOUR - timedelta(seconds=1))
    assert not state.contains(NOW + HOUR)
    assert not state.contains(NOW - timedelta(seconds=1))


def test_apply_sale_state_keeps_columns_consistent():
    product = Product(base_price=Decimal("80.00"))

    product.apply_sale_state(OnSale(discount=Decimal("25"), start=NOW - HOUR, end=NOW + HOUR), NOW)
    assert product.on_sale is True
    assert product.discounted_price == Decimal("60.00")
    assert isinstance(product.sale_state, OnSale)

    # a window that has not opened yet is stored but not live
    product.apply_sale_state(OnSale(discount=Decimal("25"), start=NOW + HOUR, end=NOW + 2 * HOUR), NOW)
    assert product.on_sale is False
    assert product.sale_start == NOW + HOUR

    product.clear_sale()
    assert product.on_sale is False
    assert product.discount == Decimal("0.00")
    assert product.sale_start is None and product.sale_end is None
    assert product.discounted_price == product.base_price
    assert product.sale_state == NotOnSale()


def test_sale_state_without_discount_is_not_on_sale():
    product = Product(base_price=Decimal("5.00"), discount=Decimal("0"), sale_start=NOW, sale_end=NOW + HOUR)
    assert sale_state_for(product) == NotOnSale()
