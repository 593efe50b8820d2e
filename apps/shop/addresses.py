import logging

from .errors import Conflict, NotFound
from .models import UserAddress

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("home_number", "street_number", "block_number", "city")


def get_address(*, user) -> UserAddress:
    address = UserAddress.objects.filter(user=user).order_by("id").first()
    if address is None:
        raise NotFound("User address not found", code="USER_ADDRESS_NOT_FOUND")
    return address


def create_address(*, user, home_number: str, block_number: str, city: str,
                   street_number: str = "") -> UserAddress:
    """Save the user's shipping address. A user keeps at most one."""
    if UserAddress.objects.filter(user=user).exists():
        raise Conflict("An address is already saved, update it instead", code="ADDRESS_ALREADY_EXISTS")
    address = UserAddress.objects.create(
        user=user,
        home_number=home_number,
        street_number=street_number,
        block_number=block_number,
        city=city,
    )
    logger.info("address %s added for user %s", address.pk, user.pk)
    return address


def update_address(*, user, **changes) -> UserAddress:
    """Overwrite only the fields given; ``None`` keeps the stored value."""
    address = get_address(user=user)
    fields = [name for name in ADDRESS_FIELDS if changes.get(name) is not None]
    for name in fields:
        setattr(address, name, changes[name])
    if fields:
        address.save(update_fields=fields)
    return address


def delete_address(*, user) -> None:
    address = get_address(user=user)
    address_id = address.pk
    address.delete()
    logger.info("address %s deleted for user %s", address_id, user.pk)
