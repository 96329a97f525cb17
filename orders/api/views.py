"""Orders API views.

List and create orders on the same endpoint; retrieve, patch and delete a
single order addressed by its UUID or its order number. The guarded
lifecycle transitions, payments and the item checklist each get their own
command endpoint returning the full order.
"""

from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from orders import services
from orders.exceptions import InvalidInput
from orders.refs import OrderRef
from .serializers import (
    OrderCreateSerializer,
    OrderOutputSerializer,
    OrderPatchSerializer,
)


# ----------------------------- helpers (module-level) -----------------------------

def _ref(view) -> OrderRef:
    """Resolve the {ref} path segment into an OrderRef (404 if it has neither shape)."""
    return OrderRef.parse(view.kwargs["ref"])


def _body(request) -> dict:
    """The JSON body as a dict; anything else is a 400."""
    data = request.data
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object.")
    return data


def _validate_patch_fields(data: dict):
    """Reject fields that cannot be updated; return Response(400) or None."""
    extra = set(data.keys()) - OrderPatchSerializer.ALLOWED_FIELDS
    if extra:
        return Response(
            {
                "detail": (
                    f"Only {', '.join(sorted(OrderPatchSerializer.ALLOWED_FIELDS))} may be updated. "
                    f"Invalid fields: {', '.join(sorted(extra))}."
                )
            },
            status=status.HTTP_400_BAD_REQUEST,
        )
    return None


def _order_response(order, code=status.HTTP_200_OK):
    return Response(OrderOutputSerializer(order).data, status=code)


# --------------------------------------- views ---------------------------------------

class OrderListCreateAPIView(generics.ListCreateAPIView):
    """GET: all orders, newest first.
    POST: create a pending order with its items.
    """

    def get_queryset(self):
        return services.list_orders()

    def get_serializer_class(self):
        """Use output serializer for GET and input serializer for POST."""
        return OrderOutputSerializer if self.request.method == "GET" else OrderCreateSerializer

    def create(self, request, *args, **kwargs):
        """Validate and create a new order, returning the full order payload."""
        serializer = self.get_serializer(data=_body(request))
        serializer.is_valid(raise_exception=True)
        order = serializer.save()
        return _order_response(order, status.HTTP_201_CREATED)


class OrderDetailUpdateDeleteAPIView(generics.RetrieveUpdateDestroyAPIView):
    """GET: one order. PATCH: sparse field update. DELETE: remove order and items."""

    serializer_class = OrderOutputSerializer

    def get_object(self):
        return services.get_order(_ref(self))

    def partial_update(self, request, *args, **kwargs):
        """Apply the given fields only; return the full order after update."""
        data = _body(request)
        bad = _validate_patch_fields(data)
        if bad is not None:
            return bad
        ref = _ref(self)
        serializer = OrderPatchSerializer(data=data, partial=True)
        serializer.is_valid(raise_exception=True)
        order = services.update_order(ref, serializer.validated_data)
        return _order_response(order)

    def update(self, request, *args, **kwargs):
        """Force partial updates via PATCH semantics."""
        kwargs["partial"] = True
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        services.delete_order(_ref(self))
        return Response({"success": True}, status=status.HTTP_200_OK)


class OrderArrivedAPIView(APIView):
    """POST /api/orders/{ref}/arrived/ -> pending to arrived."""

    def post(self, request, ref):
        return _order_response(services.mark_arrived(OrderRef.parse(ref)))


class OrderDeliveredAPIView(APIView):
    """POST /api/orders/{ref}/delivered/ -> arrived to delivered, fixes waitTime."""

    def post(self, request, ref):
        return _order_response(services.mark_delivered(OrderRef.parse(ref)))


class OrderPaymentAPIView(APIView):
    """POST /api/orders/{ref}/payment/ {"amount": <number >= 0>} -> adds to amountPaid."""

    def post(self, request, ref):
        amount = _body(request).get("amount")
        return _order_response(services.add_payment(OrderRef.parse(ref), amount))


class OrderPayInFullAPIView(APIView):
    """POST /api/orders/{ref}/payment/full/ -> pays the remaining balance."""

    def post(self, request, ref):
        return _order_response(services.pay_in_full(OrderRef.parse(ref)))


class OrderItemDeliveredAPIView(APIView):
    """PATCH /api/orders/{ref}/items/{item_id}/ {"isDelivered": bool}."""

    def patch(self, request, ref, item_id):
        is_delivered = _body(request).get("isDelivered")
        order = services.set_item_delivered(OrderRef.parse(ref), item_id, is_delivered)
        return _order_response(order)


class OrderDeliverAllItemsAPIView(APIView):
    """POST /api/orders/{ref}/items/deliver-all/.

    Marks every undelivered item one by one and reports which ones were
    updated and which failed; successful updates are kept either way.
    """

    def post(self, request, ref):
        order, updated, failed = services.mark_all_items_delivered(OrderRef.parse(ref))
        return Response(
            {
                "order": OrderOutputSerializer(order).data,
                "updated": updated,
                "failed": failed,
            },
            status=status.HTTP_200_OK,
        )
