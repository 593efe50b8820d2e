from rest_framework import serializers

from .models import CartItem, FlashSale, Order, OrderItem, Product, UserAddress
from .pricing import effective_unit_price


# ------------------------------------------------------------------ inputs


class CartItemIn(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class CartQuantityIn(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class WishlistIn(serializers.Serializer):
    product_id = serializers.IntegerField()


class AddressIn(serializers.Serializer):
    home_number = serializers.RegexField(r"^[A-Za-z0-9\s\-\.]+$", max_length=20)
    street_number = serializers.CharField(max_length=10, required=False, allow_blank=True, default="")
    block_number = serializers.RegexField(r"^[A-Za-z]?\d+[A-Za-z]?$", max_length=10)
    city = serializers.CharField(max_length=100)


class AddressUpdateIn(AddressIn):
    home_number = serializers.RegexField(r"^[A-Za-z0-9\s\-\.]+$", max_length=20, required=False)
    street_number = serializers.CharField(max_length=10, required=False, allow_blank=True)
    block_number = serializers.RegexField(r"^[A-Za-z]?\d+[A-Za-z]?$", max_length=10, required=False)
    city = serializers.CharField(max_length=100, required=False)


class CheckoutIn(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices, default=Order.PaymentMethod.CASH)


class RevisionLineIn(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class OrderRevisionIn(serializers.Serializer):
    items = RevisionLineIn(many=True)

    def validate_items(self, items):
        if not items:
            raise serializers.ValidationError("At least one item is required.")
        ids = [i["product_id"] for i in items]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError("Each product may appear only once.")
        return items


class OrderItemAddIn(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class OrderStatusIn(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)


class FlashSaleIn(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()
    discount = serializers.DecimalField(max_digits=5, decimal_places=2)
    products = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)

    def validate(self, attrs):
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "End date must be after start date."})
        return attrs


# ----------------------------------------------------------------- outputs


class AddressOut(serializers.ModelSerializer):
    class Meta:
        model = UserAddress
        fields = ["id", "home_number", "street_number", "block_number", "city"]


class ProductOut(serializers.ModelSerializer):
    effective_price = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id", "name", "base_price", "discount", "discounted_price", "on_sale",
            "sale_start", "sale_end", "stock", "sold", "is_active", "effective_price",
        ]

    def get_effective_price(self, obj):
        return str(effective_unit_price(obj))


class CartItemOut(serializers.ModelSerializer):
    cart_item_id = serializers.IntegerField(source="id")
    product = ProductOut()
    unit_price = serializers.SerializerMethodField()
    total_price = serializers.DecimalField(source="price", max_digits=12, decimal_places=2)

    class Meta:
        model = CartItem
        fields = ["cart_item_id", "product", "quantity", "unit_price", "total_price"]

    def get_unit_price(self, obj):
        return str(effective_unit_price(obj.product))


class OrderItemOut(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["id", "product", "quantity", "price"]


class OrderOut(serializers.ModelSerializer):
    items = OrderItemOut(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id", "uuid", "user", "total_price", "status", "payment_method",
            "shipping_address", "created_at", "items",
        ]


class FlashSaleOut(serializers.ModelSerializer):
    products = ProductOut(many=True, read_only=True)

    class Meta:
        model = FlashSale
        fields = ["id", "name", "description", "discount", "start_date", "end_date", "is_active", "products"]
