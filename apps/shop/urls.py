from django.urls import path

from . import views

urlpatterns = [
    path("cart/", views.cart_view, name="cart"),
    path("cart/<int:cart_item_id>/", views.cart_item_view, name="cart-item"),
    path("wishlist/", views.wishlist_view, name="wishlist"),
    path("wishlist/move-to-cart/", views.wishlist_to_cart_view, name="wishlist-to-cart"),
    path("wishlist/<int:product_id>/", views.wishlist_item_view, name="wishlist-item"),
    path("address/", views.address_view, name="address"),
    path("checkout/", views.checkout_view, name="checkout"),
    path("orders/", views.my_orders_view, name="my-orders"),
    path("orders/<int:order_id>/", views.my_order_detail_view, name="my-order-detail"),
    path("admin/orders/", views.admin_orders_view, name="admin-orders"),
    path("admin/orders/<int:order_id>/", views.admin_order_detail_view, name="admin-order-detail"),
    path("admin/orders/<int:order_id>/items/", views.admin_order_revise_view, name="admin-order-revise"),
    path("admin/orders/<int:order_id>/items/add/", views.admin_order_item_add_view, name="admin-order-item-add"),
    path(
        "admin/orders/<int:order_id>/items/<int:item_id>/",
        views.admin_order_item_remove_view,
        name="admin-order-item-remove",
    ),
    path("admin/orders/<int:order_id>/status/", views.admin_order_status_view, name="admin-order-status"),
    path("admin/flash-sales/", views.admin_flash_sales_view, name="admin-flash-sales"),
    path("admin/flash-sales/<int:flash_sale_id>/", views.admin_flash_sale_detail_view, name="admin-flash-sale-detail"),
    path(
        "admin/flash-sales/<int:flash_sale_id>/toggle/",
        views.admin_flash_sale_toggle_view,
        name="admin-flash-sale-toggle",
    ),
]
