import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from django.utils import timezone

from .conf import shop_setting
from .sales import activate_flash_sales, expire_product_sales, reprice_carts

logger = logging.getLogger(__name__)


@dataclass
class Sweep:
    name: str
    run: Callable
    interval: timedelta
    last_run: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        return self.last_run is None or now - self.last_run >= self.interval

    def next_run(self, now: datetime) -> datetime:
        if self.last_run is None:
            return now
        return self.last_run + self.interval


def default_sweeps() -> list:
    return [
        Sweep("activate_flash_sales", activate_flash_sales,
              timedelta(seconds=shop_setting("FLASH_SALE_SWEEP_INTERVAL"))),
        Sweep("expire_product_sales", expire_product_sales,
              timedelta(seconds=shop_setting("SALE_EXPIRY_SWEEP_INTERVAL"))),
        Sweep("reprice_carts", reprice_carts,
              timedelta(seconds=shop_setting("CART_REPRICE_INTERVAL"))),
    ]


class SaleScheduler:
    """Runs each sweep on its own cadence. No ordering between sweeps."""

    def __init__(self, sweeps=None, clock=timezone.now):
        self.sweeps = list(sweeps) if sweeps is not None else default_sweeps()
        self.clock = clock

    def tick(self, now: datetime | None = None) -> list:
        now = now or self.clock()
        ran = []
        for sweep in self.sweeps:
            if not sweep.is_due(now):
                continue
            sweep.last_run = now
            try:
                sweep.run(now=now)
            except Exception:
                # retried on its next interval
                logger.exception("sweep %s failed", sweep.name)
                continue
            ran.append(sweep.name)
        return ran

    def seconds_until_next(self, now: datetime | None = None) -> float:
        now = now or self.clock()
        upcoming = min(sweep.next_run(now) for sweep in self.sweeps)
        return max((upcoming - now).total_seconds(), 0.0)

    def run_forever(self, *, sleep=time.sleep, should_stop=lambda: False):
        logger.info("sale scheduler started with %s", [s.name for s in self.sweeps])
        while not should_stop():
            self.tick()
            sleep(max(self.seconds_until_next(), 1.0))
