from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from . import addresses, cart, flash_sales, idempotency, orders, wishlist
from .serializers import (
    AddressIn,
    AddressOut,
    AddressUpdateIn,
    CartItemIn,
    CartItemOut,
    CartQuantityIn,
    CheckoutIn,
    FlashSaleIn,
    FlashSaleOut,
    OrderItemAddIn,
    OrderOut,
    OrderRevisionIn,
    OrderStatusIn,
    ProductOut,
    WishlistIn,
)

# ------------------------------------------------------------------- cart


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def cart_view(request):
    if request.method == "POST":
        ser = CartItemIn(data=request.data)
        ser.is_valid(raise_exception=True)
        item = cart.add_to_cart(user=request.user, **ser.validated_data)
        return Response(CartItemOut(item).data, status=status.HTTP_201_CREATED)

    summary = cart.list_cart(user=request.user)
    if summary.is_empty:
        return Response({"message": "Your cart is empty", "cart": [], "total_items": 0, "total_price": "0.00"})
    return Response({
        "message": "Cart retrieved successfully",
        "cart": CartItemOut(summary.items, many=True).data,
        "total_items": summary.count,
        "total_price": str(summary.total),
    })


@api_view(["PATCH", "DELETE"])
@permission_classes([IsAuthenticated])
def cart_item_view(request, cart_item_id):
    if request.method == "DELETE":
        cart.remove_from_cart(user=request.user, cart_item_id=cart_item_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    ser = CartQuantityIn(data=request.data)
    ser.is_valid(raise_exception=True)
    item = cart.set_cart_quantity(user=request.user, cart_item_id=cart_item_id, **ser.validated_data)
    return Response(CartItemOut(item).data)


# --------------------------------------------------------------- wishlist


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def wishlist_view(request):
    if request.method == "POST":
        ser = WishlistIn(data=request.data)
        ser.is_valid(raise_exception=True)
        wishlist.add_to_wishlist(user=request.user, **ser.validated_data)
        return Response({"message": "Added to wishlist"}, status=status.HTTP_201_CREATED)

    products = wishlist.list_wishlist(user=request.user)
    return Response({"products": ProductOut(products, many=True).data, "productCount": len(products)})


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def wishlist_item_view(request, product_id):
    wishlist.remove_from_wishlist(user=request.user, product_id=product_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def wishlist_to_cart_view(request):
    moved = wishlist.move_wishlist_to_cart(user=request.user)
    return Response({"moved": moved})


# --------------------------------------------------------------- checkout


def _checkout_payload(order):
    return {
        "order_id": order.pk,
        "uuid": str(order.uuid),
        "total_price": str(order.total_price),
        "shipping_address": order.shipping_address,
        "payment_method": order.payment_method,
        "order_status": order.status,
    }


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def checkout_view(request):
    ser = CheckoutIn(data=request.data)
    ser.is_valid(raise_exception=True)
    payment_method = ser.validated_data["payment_method"]

    def place():
        order = orders.checkout(user=request.user, payment_method=payment_method)
        return status.HTTP_201_CREATED, _checkout_payload(order)

    key = request.headers.get("Idempotency-Key")
    if key:
        status_code, payload = idempotency.run_once(key=key, user=request.user, data=ser.validated_data, action=place)
    else:
        status_code, payload = place()
    return Response(payload, status=status_code)


# --------------------------------------------------------------- address


@api_view(["GET", "POST", "PATCH", "DELETE"])
@permission_classes([IsAuthenticated])
def address_view(request):
    if request.method == "POST":
        ser = AddressIn(data=request.data)
        ser.is_valid(raise_exception=True)
        address = addresses.create_address(user=request.user, **ser.validated_data)
        return Response(AddressOut(address).data, status=status.HTTP_201_CREATED)
    if request.method == "PATCH":
        ser = AddressUpdateIn(data=request.data)
        ser.is_valid(raise_exception=True)
        address = addresses.update_address(user=request.user, **ser.validated_data)
        return Response(AddressOut(address).data)
    if request.method == "DELETE":
        addresses.delete_address(user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
    return Response(AddressOut(addresses.get_address(user=request.user)).data)


# ----------------------------------------------------------------- orders


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def my_orders_view(request):
    qs = orders.list_orders(user=request.user, status=request.query_params.get("status"))
    return Response({"orders": OrderOut(qs, many=True).data, "total_orders": len(qs)})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def my_order_detail_view(request, order_id):
    order = orders.get_order(order_id, user=request.user)
    return Response(OrderOut(order).data)


@api_view(["GET"])
@permission_classes([IsAdminUser])
def admin_orders_view(request):
    qs = orders.list_orders(status=request.query_params.get("status"))
    return Response({"orders": OrderOut(qs, many=True).data, "total_orders": len(qs)})


@api_view(["GET"])
@permission_classes([IsAdminUser])
def admin_order_detail_view(request, order_id):
    return Response(OrderOut(orders.get_order(order_id)).data)


@api_view(["PUT"])
@permission_classes([IsAdminUser])
def admin_order_revise_view(request, order_id):
    ser = OrderRevisionIn(data=request.data)
    ser.is_valid(raise_exception=True)
    result = orders.revise_order(order_id=order_id, lines=ser.validated_data["items"])
    order = orders.get_order(result.order.pk)
    return Response({
        "order": OrderOut(order).data,
        "skipped": [
            {"product_id": s.product_id, "requested": s.requested, "available": s.available}
            for s in result.skipped
        ],
    })


@api_view(["POST"])
@permission_classes([IsAdminUser])
def admin_order_item_add_view(request, order_id):
    ser = OrderItemAddIn(data=request.data)
    ser.is_valid(raise_exception=True)
    orders.add_order_item(order_id=order_id, **ser.validated_data)
    return Response(OrderOut(orders.get_order(order_id)).data, status=status.HTTP_201_CREATED)


@api_view(["DELETE"])
@permission_classes([IsAdminUser])
def admin_order_item_remove_view(request, order_id, item_id):
    orders.remove_order_item(order_id=order_id, item_id=item_id)
    return Response(OrderOut(orders.get_order(order_id)).data)


@api_view(["POST"])
@permission_classes([IsAdminUser])
def admin_order_status_view(request, order_id):
    ser = OrderStatusIn(data=request.data)
    ser.is_valid(raise_exception=True)
    order = orders.set_order_status(order_id=order_id, **ser.validated_data)
    return Response({"message": f"Order {order.pk} status updated to {order.status}", "status": order.status})


# ------------------------------------------------------------ flash sales


def _flash_sale_kwargs(validated):
    return {
        "name": validated["name"],
        "description": validated.get("description"),
        "start_date": validated["start_date"],
        "end_date": validated["end_date"],
        "discount": validated["discount"],
        "product_ids": validated["products"],
    }


@api_view(["GET", "POST"])
@permission_classes([IsAdminUser])
def admin_flash_sales_view(request):
    if request.method == "POST":
        ser = FlashSaleIn(data=request.data)
        ser.is_valid(raise_exception=True)
        sale = flash_sales.create_flash_sale(**_flash_sale_kwargs(ser.validated_data))
        return Response(FlashSaleOut(sale).data, status=status.HTTP_201_CREATED)
    return Response({"flashSales": FlashSaleOut(flash_sales.list_flash_sales(), many=True).data})


@api_view(["GET", "PUT", "DELETE"])
@permission_classes([IsAdminUser])
def admin_flash_sale_detail_view(request, flash_sale_id):
    if request.method == "DELETE":
        flash_sales.delete_flash_sale(flash_sale_id=flash_sale_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
    if request.method == "PUT":
        ser = FlashSaleIn(data=request.data)
        ser.is_valid(raise_exception=True)
        sale = flash_sales.update_flash_sale(flash_sale_id=flash_sale_id, **_flash_sale_kwargs(ser.validated_data))
        return Response(FlashSaleOut(sale).data)
    return Response(FlashSaleOut(flash_sales.get_flash_sale(flash_sale_id)).data)


@api_view(["POST"])
@permission_classes([IsAdminUser])
def admin_flash_sale_toggle_view(request, flash_sale_id):
    sale = flash_sales.toggle_flash_sale(flash_sale_id=flash_sale_id)
    return Response({"id": sale.pk, "is_active": sale.is_active})
