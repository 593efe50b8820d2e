import logging
import time
from functools import wraps

from django.db import DatabaseError

from .conf import shop_setting

logger = logging.getLogger(__name__)

SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
TRANSIENT_MARKERS = ("deadlock detected", "could not serialize access", "database is locked")


def is_retryable(exc: Exception) -> bool:
    """True for lock conflicts that a fresh transaction may not hit again."""
    if not isinstance(exc, DatabaseError):
        return False
    cause = exc.__cause__
    pgcode = getattr(exc, "pgcode", None) or getattr(cause, "pgcode", None)
    if pgcode in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


def retry_on_tx_failure(max_attempts=None, backoff=None):
    """Re-run an idempotent unit of work after a transient lock conflict.

    Defaults come from ``SHOP["TX_RETRY_ATTEMPTS"]`` and
    ``SHOP["TX_RETRY_BACKOFF"]``, read at call time. Checkout is never
    wrapped.
    """

    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            attempts = max_attempts or shop_setting("TX_RETRY_ATTEMPTS")
            delay = shop_setting("TX_RETRY_BACKOFF") if backoff is None else backoff
            for attempt in range(1, attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except DatabaseError as exc:
                    if attempt == attempts or not is_retryable(exc):
                        raise
                    logger.warning("%s hit %s on attempt %d of %d", fn.__name__, exc, attempt, attempts)
                    time.sleep(delay * attempt)

        return wrapper

    return deco
