from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class NotOnSale:
    pass


@dataclass(frozen=True)
class OnSale:
    discount: Decimal
    start: datetime
    end: datetime

    def __post_init__(self):
        if not (Decimal("0") < Decimal(self.discount) <= HUNDRED):
            raise ValueError("discount must be in (0, 100]")
        if self.start >= self.end:
            raise ValueError("sale window must end after it starts")

    def contains(self, now: datetime) -> bool:
        # half-open: [start, end)
        return self.start <= now < self.end


SaleState = Union[NotOnSale, OnSale]


def quantize(amount) -> Decimal:
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def discounted_price_for(base_price, discount) -> Decimal:
    """``base * (1 - discount/100)`` rounded to cents."""
    base_price = Decimal(base_price)
    return quantize(base_price * (HUNDRED - Decimal(discount)) / HUNDRED)


def effective_unit_price(product) -> Decimal:
    """Price charged for one unit right now. Cart and checkout both use this."""
    if product.on_sale:
        return Decimal(product.discounted_price)
    return Decimal(product.base_price)


def line_price(product, quantity: int) -> Decimal:
    return quantize(effective_unit_price(product) * quantity)


def sale_state_for(product) -> SaleState:
    if product.sale_start is None or product.sale_end is None or not product.discount:
        return NotOnSale()
    return OnSale(discount=Decimal(product.discount), start=product.sale_start, end=product.sale_end)
