class ShopError(Exception):
    """Base for every error the shop services raise on purpose.

    ``code`` is the machine readable value returned to clients as
    ``devMessage``; ``status_code`` is what the API layer answers with.
    """

    code = "SHOP_ERROR"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class NotFound(ShopError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class Inactive(ShopError):
    code = "NOT_ACTIVE"
    default_message = "Item is not available"


class OutOfStock(ShopError):
    code = "OUT_OF_STOCK"
    default_message = "Not enough stock"


class LowStock(OutOfStock):
    """Stock is under the safety threshold required to sell it."""

    code = "LOW_STOCK"
    default_message = "Stock is below the minimum threshold"


class AllItemsSkipped(LowStock):
    code = "ALL_ITEMS_SKIPPED_LOW_STOCK"
    status_code = 409
    default_message = "Every submitted item was skipped because of low stock"

    def __init__(self, skipped, message: str | None = None):
        super().__init__(message)
        self.skipped = list(skipped)


class ValidationFailed(ShopError):
    code = "VALIDATION_FAILED"
    status_code = 422
    default_message = "Invalid input"


class NotAuthenticated(ShopError):
    code = "USER_NOT_AUTHENTICATED"
    status_code = 401
    default_message = "User not authenticated"


class EmptyCart(ValidationFailed):
    code = "EMPTY_CART"
    status_code = 400
    default_message = "Your cart is empty, add items to your cart to proceed"


class AddressNotFound(NotFound):
    code = "ADDRESS_NOT_FOUND"
    status_code = 400
    default_message = "Add an address to your account to proceed with the order"


class Conflict(ShopError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Conflicting request"


class TransactionFailed(ShopError):
    code = "TRANSACTION_FAILED"
    status_code = 500
    default_message = "The operation failed and was rolled back"
