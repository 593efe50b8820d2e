from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured

from apps.shop import sales
from apps.shop.models import ActiveFlashSale, CartItem, FlashSale, Product, SystemPerformanceLog

pytestmark = pytest.mark.django_db

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


@pytest.fixture
def past_now_future(now, make_flash_sale):
    a = make_flash_sale("A", now - 3 * DAY, now - 2 * DAY, is_active=True)
    b = make_flash_sale("B", now - HOUR, now + HOUR)
    c = make_flash_sale("C", now + DAY, now + 2 * DAY, is_active=True)
    return a, b, c


def _flags():
    return dict(FlashSale.objects.values_list("name", "is_active"))


# --------------------------------------------------- flash sale activation


def test_partial_scan_stops_at_first_match(now, past_now_future):
    activated = sales.activate_flash_sales(now=now, mode=sales.LEGACY)

    assert activated.name == "B"
    # C sits after the match and is never looked at
    assert _flags() == {"A": False, "B": True, "C": True}


def test_partial_scan_without_match_switches_everything_off(now, make_flash_sale):
    make_flash_sale("old", now - 3 * DAY, now - 2 * DAY, is_active=True)
    make_flash_sale("new", now + DAY, now + 2 * DAY, is_active=True)

    assert sales.activate_flash_sales(now=now, mode=sales.LEGACY) is None
    assert set(_flags().values()) == {False}


def test_partial_scan_end_of_window_is_exclusive(now, make_flash_sale):
    make_flash_sale("ending", now - DAY, now, is_active=True)

    assert sales.activate_flash_sales(now=now, mode=sales.LEGACY) is None
    assert _flags() == {"ending": False}


def test_mode_comes_from_settings(settings, now, past_now_future):
    settings.SHOP = {"FLASH_SALE_ACTIVATION_MODE": "exclusive"}

    sales.activate_flash_sales(now=now)

    assert _flags() == {"A": False, "B": True, "C": False}


def test_exclusive_mode_keeps_single_active_sale_and_pointer(now, past_now_future):
    _, b, _ = past_now_future

    activated = sales.activate_flash_sales(now=now, mode=sales.EXCLUSIVE)

    assert activated == b
    assert _flags() == {"A": False, "B": True, "C": False}
    assert ActiveFlashSale.objects.get().flash_sale == b

    # running again changes nothing
    sales.activate_flash_sales(now=now, mode=sales.EXCLUSIVE)
    assert _flags() == {"A": False, "B": True, "C": False}
    assert ActiveFlashSale.objects.count() == 1


def test_exclusive_mode_clears_pointer_when_nothing_runs(now, past_now_future):
    sales.activate_flash_sales(now=now, mode=sales.EXCLUSIVE)

    sales.activate_flash_sales(now=now + 3 * DAY, mode=sales.EXCLUSIVE)

    assert set(_flags().values()) == {False}
    assert ActiveFlashSale.objects.get().flash_sale is None


def test_activation_puts_opened_products_on_sale(now, make_flash_sale, make_sale_product):
    waiting = make_sale_product(name="waiting", start=now - HOUR, end=now + HOUR, on_sale=False)
    later = make_sale_product(name="later", start=now + HOUR, end=now + 2 * HOUR, on_sale=False)
    make_flash_sale("B", now - HOUR, now + HOUR, products=[waiting, later])

    sales.activate_flash_sales(now=now, mode=sales.LEGACY)

    assert Product.objects.get(pk=waiting.pk).on_sale is True
    assert Product.objects.get(pk=later.pk).on_sale is False


def test_unknown_activation_mode(now):
    with pytest.raises(ImproperlyConfigured):
        sales.activate_flash_sales(now=now, mode="random")


# ------------------------------------------------------------ sale expiry


def test_expiry_clears_sales_that_have_ended(now, make_sale_product):
    ended = make_sale_product(name="ended", price="50.00", start=now - DAY, end=now - HOUR)
    running = make_sale_product(name="running", start=now - HOUR, end=now + HOUR)

    assert sales.expire_product_sales(now=now) == 1

    ended.refresh_from_db()
    assert ended.on_sale is False
    assert ended.discount == 0
    assert ended.sale_start is None and ended.sale_end is None
    assert ended.discounted_price == Decimal("50.00")
    assert Product.objects.get(pk=running.pk).on_sale is True
    assert not Product.objects.filter(on_sale=True, sale_end__lt=now).exists()
    assert SystemPerformanceLog.objects.filter(log_type="info").count() == 1


def test_expiry_never_starts_a_sale(now, make_sale_product):
    dormant = make_sale_product(start=now - HOUR, end=now + HOUR, on_sale=False)

    assert sales.expire_product_sales(now=now) == 0
    assert Product.objects.get(pk=dormant.pk).on_sale is False


def test_every_live_sale_product_keeps_price_invariant(now, make_sale_product):
    make_sale_product(name="a", price="80.00", discount="25", start=now - DAY, end=now - HOUR)
    make_sale_product(name="b", price="40.00", discount="50", start=now - HOUR, end=now + HOUR)

    sales.expire_product_sales(now=now)

    for product in Product.objects.filter(on_sale=True):
        assert product.sale_start <= now < product.sale_end
        assert product.discounted_price == product.base_price * (100 - product.discount) / 100


# ---------------------------------------------------------- cart pricing


def test_reprice_brings_cart_lines_to_effective_price(now, shopper, make_product, make_sale_product, put_in_cart):
    plain = make_product(name="plain", price="10.00")
    discounted = make_sale_product(name="discounted", price="100.00", discount="20")
    put_in_cart(shopper, plain, 2, price="18.00")
    put_in_cart(shopper, discounted, 1, price="100.00")

    assert sales.reprice_carts(now=now) == 2

    prices = dict(CartItem.objects.values_list("product_id", "price"))
    assert prices == {plain.pk: Decimal("20.00"), discounted.pk: Decimal("80.00")}
    assert sales.reprice_carts(now=now) == 0


def test_reprice_after_expiry_drops_discount(now, shopper, make_sale_product, put_in_cart):
    product = make_sale_product(price="100.00", discount="20", start=now - DAY, end=now - HOUR)
    put_in_cart(shopper, product, 1, price="80.00")

    sales.expire_product_sales(now=now)
    sales.reprice_carts(now=now)

    assert CartItem.objects.get().price == Decimal("100.00")
