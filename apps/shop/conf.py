from django.conf import settings

DEFAULTS = {
    "MINIMUM_STOCK_THRESHOLD": 5,
    "FLASH_SALE_ACTIVATION_MODE": "legacy",
    "FLASH_SALE_SWEEP_INTERVAL": 3600,
    "SALE_EXPIRY_SWEEP_INTERVAL": 60,
    "CART_REPRICE_INTERVAL": 900,
    "TX_RETRY_ATTEMPTS": 3,
    "TX_RETRY_BACKOFF": 0.05,
}


def shop_setting(name: str):
    """Read a key from ``settings.SHOP``, falling back to the defaults above."""
    overrides = getattr(settings, "SHOP", {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
