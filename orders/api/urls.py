from django.urls import re_path
from .views import (
    OrderListCreateAPIView,
    OrderDetailUpdateDeleteAPIView,
    OrderArrivedAPIView,
    OrderDeliveredAPIView,
    OrderPaymentAPIView,
    OrderPayInFullAPIView,
    OrderItemDeliveredAPIView,
    OrderDeliverAllItemsAPIView,
)

# The trailing slash is optional: a POST to "orders" must not be redirected.
REF = r"(?P<ref>[^/]+)"

urlpatterns = [
    re_path(r"^orders/?$", OrderListCreateAPIView.as_view(), name="order-list"),
    re_path(rf"^orders/{REF}/?$", OrderDetailUpdateDeleteAPIView.as_view(), name="order-detail"),
    re_path(rf"^orders/{REF}/arrived/?$", OrderArrivedAPIView.as_view(), name="order-arrived"),
    re_path(rf"^orders/{REF}/delivered/?$", OrderDeliveredAPIView.as_view(), name="order-delivered"),
    re_path(rf"^orders/{REF}/payment/?$", OrderPaymentAPIView.as_view(), name="order-payment"),
    re_path(rf"^orders/{REF}/payment/full/?$", OrderPayInFullAPIView.as_view(), name="order-payment-full"),
    re_path(
        rf"^orders/{REF}/items/deliver-all/?$",
        OrderDeliverAllItemsAPIView.as_view(),
        name="order-items-deliver-all",
    ),
    re_path(
        rf"^orders/{REF}/items/(?P<item_id>[^/]+)/?$",
        OrderItemDeliveredAPIView.as_view(),
        name="order-item-detail",
    ),
]
