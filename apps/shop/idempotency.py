import hashlib
import json
import logging

from django.db import transaction

from .errors import Conflict
from .models import IdempotencyKey

logger = logging.getLogger(__name__)


def request_fingerprint(data) -> str:
    return hashlib.sha256(json.dumps(data, sort_keys=True, default=str).encode()).hexdigest()


def run_once(*, key: str, user, data, action):
    """Run ``action`` at most once per idempotency ``key``.

    ``action`` returns ``(status_code, body)``. A repeat of the same request
    gets the stored response back. Reusing the key with a different body, or
    another user's key, is a ``Conflict``. If ``action`` raises, the key is
    rolled back with everything else so the request can be retried.
    """
    fingerprint = request_fingerprint(data)
    with transaction.atomic():
        record, created = IdempotencyKey.objects.select_for_update().get_or_create(
            key=key,
            defaults={"user": user, "request_hash": fingerprint, "status_code": 0, "response_body": {}},
        )
        if record.user_id != user.pk or record.request_hash != fingerprint:
            raise Conflict("Idempotency key was already used for another request", code="IDEMPOTENCY_KEY_REUSED")
        if not created and record.status_code:
            logger.info("replaying idempotent response for key %s", key)
            return record.status_code, record.response_body

        status_code, body = action()
        record.status_code, record.response_body = status_code, body
        record.save(update_fields=["status_code", "response_body"])
    return status_code, body
