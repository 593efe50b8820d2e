from uuid import uuid4
from decimal import Decimal

from django.conf import settings
from django.db import models

from .pricing import NotOnSale, OnSale, SaleState, discounted_price_for, sale_state_for


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class Product(models.Model):
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True, default="")
    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL, null=True, blank=True, related_name="products"
    )
    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    discounted_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    on_sale = models.BooleanField(default=False)
    sale_start = models.DateTimeField(null=True, blank=True)
    sale_end = models.DateTimeField(null=True, blank=True)
    stock = models.PositiveIntegerField(default=0)
    sold = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=["on_sale", "sale_end"], name="shop_product_sale_end_idx")]

    def __str__(self):
        return self.name

    @property
    def sale_state(self) -> SaleState:
        return sale_state_for(self)

    def apply_sale_state(self, state: SaleState, now) -> list[str]:
        """Write the sale columns from ``state`` and return the touched fields."""
        if isinstance(state, OnSale):
            self.discount = state.discount
            self.sale_start = state.start
            self.sale_end = state.end
            self.discounted_price = discounted_price_for(self.base_price, state.discount)
            self.on_sale = state.contains(now)
        else:
            self.discount = Decimal("0.00")
            self.sale_start = None
            self.sale_end = None
            self.discounted_price = self.base_price
            self.on_sale = False
        return ["discount", "sale_start", "sale_end", "discounted_price", "on_sale", "updated_at"]

    def clear_sale(self) -> list[str]:
        return self.apply_sale_state(NotOnSale(), now=None)


class FlashSale(models.Model):
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(null=True, blank=True)
    discount = models.DecimalField(max_digits=5, decimal_places=2)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=False)
    products = models.ManyToManyField(Product, related_name="flash_sales", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def window_contains(self, now) -> bool:
        return self.start_date <= now < self.end_date


class ActiveFlashSale(models.Model):
    """Single row holding the authoritative "current flash sale" pointer."""

    SINGLETON_ID = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_ID, editable=False)
    flash_sale = models.OneToOneField(
        FlashSale, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    updated_at = models.DateTimeField(auto_now=True)

    @classmethod
    def load_for_update(cls):
        pointer, _ = cls.objects.select_for_update().get_or_create(id=cls.SINGLETON_ID)
        return pointer


class UserAddress(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="addresses")
    home_number = models.CharField(max_length=20)
    street_number = models.CharField(max_length=20)
    block_number = models.CharField(max_length=20)
    city = models.CharField(max_length=100)

    def as_shipping_address(self) -> str:
        return (
            f"Building number: {self.home_number}, Street number: {self.street_number}, "
            f"Block number: {self.block_number}, City: {self.city}"
        )


class CartItem(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="cart_items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="cart_items")
    quantity = models.PositiveIntegerField()
    # unit price at last write * quantity; refreshed by the re-pricing sweep
    price = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "product"], name="uniq_cart_item_user_product"),
        ]


class WishlistItem(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="wishlist_items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="wishlist_items")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "product"], name="uniq_wishlist_user_product"),
        ]


class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        CANCELED = "canceled", "Canceled"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        CREDIT_CARD = "credit_card", "Credit card"
        PAYPAL = "paypal", "PayPal"
        DEBIT_CARD = "debit_card", "Debit card"

    uuid = models.UUIDField(default=uuid4, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="orders")
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    shipping_address = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="order_items")
    quantity = models.PositiveIntegerField()
    # line price frozen at order creation / revision time
    price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["order", "product"], name="uniq_order_item_order_product"),
        ]


class SystemPerformanceLog(models.Model):
    log_type = models.CharField(max_length=20)  # info/error
    message = models.CharField(max_length=255)
    context = models.JSONField(null=True, blank=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    status_code = models.PositiveSmallIntegerField(default=200)
    created_at = models.DateTimeField(auto_now_add=True)


class IdempotencyKey(models.Model):
    key = models.CharField(max_length=128, unique=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    request_hash = models.CharField(max_length=64)
    status_code = models.PositiveSmallIntegerField()
    response_body = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)
