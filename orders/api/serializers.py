"""Orders API serializers.

Input serializers for creating and patching orders, and the output serializer
that renders the full denormalized order (camelCase keys, amounts as numbers,
arrivedAt as epoch milliseconds, plus the derived balance/timer fields).
"""

from rest_framework import serializers

from orders import ledger, lifecycle, services
from orders.models import Order, OrderItem

# 9999-12-31T23:59:59.999Z, the last instant a datetime can hold
MAX_EPOCH_MS = 253_402_300_799_999
# PositiveIntegerField upper bound
MAX_WAIT_SECONDS = 2_147_483_647


# --------------------------- helpers (pure functions) ---------------------------

def _has_named_item(items):
    return any((item.get("name") or "").strip() for item in items or [])


def _amount_field(**kwargs):
    return serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, coerce_to_string=False, **kwargs
    )


# --------------------------------- input ---------------------------------

class OrderItemInputSerializer(serializers.Serializer):
    """One line item as sent by the client. Blank names are dropped later."""

    name = serializers.CharField(max_length=200, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    isDelivered = serializers.BooleanField(source="is_delivered", required=False, default=False)


class OrderCreateSerializer(serializers.Serializer):
    """Input serializer for POST /api/orders/.

    Validates:
    - customerName is not blank
    - at least one item has a non-blank name
    - address is given when deliveryType is "delivery"
    """

    customerName = serializers.CharField(source="customer_name", max_length=200)
    items = OrderItemInputSerializer(many=True)
    estimatedArrival = serializers.CharField(
        source="estimated_arrival", max_length=100, required=False, allow_blank=True, allow_null=True
    )
    deliveryType = serializers.ChoiceField(source="delivery_type", choices=Order.DeliveryType.choices)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    totalAmount = _amount_field(source="total_amount", required=False, allow_null=True)
    amountPaid = _amount_field(source="amount_paid", required=False, allow_null=True)

    def validate_items(self, value):
        if not _has_named_item(value):
            raise serializers.ValidationError("At least one item with a name is required.")
        return value

    def validate(self, attrs):
        """Delivery orders need somewhere to deliver to."""
        if attrs.get("delivery_type") == Order.DeliveryType.DELIVERY:
            if not (attrs.get("address") or "").strip():
                raise serializers.ValidationError(
                    {"address": "Address is required for delivery orders."}
                )
        return attrs

    def create(self, validated_data):
        return services.create_order(**validated_data)


class OrderPatchSerializer(serializers.Serializer):
    """Sparse update: every field optional, each one replaces its stored value.

    No status transition rules apply here. ``items`` replaces the whole item
    set and may be empty.
    """

    customerName = serializers.CharField(source="customer_name", max_length=200, required=False)
    estimatedArrival = serializers.CharField(
        source="estimated_arrival", max_length=100, required=False, allow_blank=True, allow_null=True
    )
    status = serializers.ChoiceField(choices=Order.Status.choices, required=False)
    deliveryType = serializers.ChoiceField(
        source="delivery_type", choices=Order.DeliveryType.choices, required=False
    )
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    arrivedAt = serializers.IntegerField(
        source="arrived_at", min_value=0, max_value=MAX_EPOCH_MS, required=False, allow_null=True
    )
    waitTime = serializers.IntegerField(
        source="wait_time", min_value=0, max_value=MAX_WAIT_SECONDS, required=False, allow_null=True
    )
    totalAmount = _amount_field(source="total_amount", required=False)
    amountPaid = _amount_field(source="amount_paid", required=False)
    items = OrderItemInputSerializer(many=True, required=False, allow_empty=True)

    ALLOWED_FIELDS = {
        "customerName",
        "estimatedArrival",
        "status",
        "deliveryType",
        "address",
        "arrivedAt",
        "waitTime",
        "totalAmount",
        "amountPaid",
        "items",
    }


# --------------------------------- output ---------------------------------

class OrderItemOutputSerializer(serializers.ModelSerializer):
    isDelivered = serializers.BooleanField(source="is_delivered")

    class Meta:
        model = OrderItem
        fields = ["id", "name", "quantity", "isDelivered"]


class OrderOutputSerializer(serializers.ModelSerializer):
    """Read serializer for returning a complete order representation."""

    orderNumber = serializers.SerializerMethodField()
    customerName = serializers.CharField(source="customer_name")
    items = OrderItemOutputSerializer(many=True, read_only=True)
    estimatedArrival = serializers.CharField(source="estimated_arrival")
    arrivedAt = serializers.SerializerMethodField()
    waitTime = serializers.IntegerField(source="wait_time")
    deliveryType = serializers.CharField(source="delivery_type")
    totalAmount = serializers.DecimalField(
        source="total_amount", max_digits=12, decimal_places=2, coerce_to_string=False
    )
    amountPaid = serializers.DecimalField(
        source="amount_paid", max_digits=12, decimal_places=2, coerce_to_string=False
    )
    remainingBalance = serializers.SerializerMethodField()
    paymentStatus = serializers.SerializerMethodField()
    elapsed = serializers.SerializerMethodField()
    allItemsDelivered = serializers.SerializerMethodField()
    readyForHandoff = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = Order
        fields = [
            "id",
            "orderNumber",
            "customerName",
            "items",
            "status",
            "estimatedArrival",
            "arrivedAt",
            "waitTime",
            "deliveryType",
            "address",
            "totalAmount",
            "amountPaid",
            "remainingBalance",
            "paymentStatus",
            "elapsed",
            "allItemsDelivered",
            "readyForHandoff",
            "createdAt",
        ]

    def get_orderNumber(self, obj):
        return str(obj.order_number)

    def get_arrivedAt(self, obj):
        if obj.arrived_at is None:
            return None
        return int(obj.arrived_at.timestamp() * 1000)

    def get_remainingBalance(self, obj):
        return ledger.remaining_balance(obj)

    def get_paymentStatus(self, obj):
        return ledger.payment_status(obj)

    def get_elapsed(self, obj):
        return lifecycle.format_elapsed(lifecycle.elapsed_seconds(obj))

    def get_allItemsDelivered(self, obj):
        return all(item.is_delivered for item in obj.items.all())

    def get_readyForHandoff(self, obj):
        return ledger.is_ready_for_handoff(obj, items=list(obj.items.all()))
