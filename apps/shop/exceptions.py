from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import AllItemsSkipped, ShopError


def shop_exception_handler(exc, context):
    """Render service errors as ``{"message", "devMessage"}``; defer the rest to DRF."""
    if isinstance(exc, ShopError):
        body = {"message": exc.message, "devMessage": exc.code}
        if isinstance(exc, AllItemsSkipped):
            body["skipped"] = [
                {"product_id": s.product_id, "requested": s.requested, "available": s.available}
                for s in exc.skipped
            ]
        return Response(body, status=exc.status_code)
    return exception_handler(exc, context)
