"""Orders app models.

Defines the Order and OrderItem models. An Order is one customer's pre-order;
it carries two identifiers: a UUID primary key and a sequential, human-facing
order number. OrderItem rows belong to exactly one order and are removed with
it.
"""

import uuid

from django.core.validators import MinValueValidator
from django.db import models

FIRST_ORDER_NUMBER = 1001


class Order(models.Model):
    """A customer's pre-order, tracked from pending to delivered."""

    class Status(models.TextChoices):
        PENDING = "pending", "pending"
        ARRIVED = "arrived", "arrived"
        DELIVERED = "delivered", "delivered"

    class DeliveryType(models.TextChoices):
        ON_SITE = "on-site", "on-site"
        DELIVERY = "delivery", "delivery"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.PositiveIntegerField(unique=True, editable=False)

    customer_name = models.CharField(max_length=200)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    estimated_arrival = models.CharField(max_length=100, blank=True, null=True)
    arrived_at = models.DateTimeField(blank=True, null=True)
    wait_time = models.PositiveIntegerField(blank=True, null=True)

    delivery_type = models.CharField(max_length=20, choices=DeliveryType.choices)
    address = models.TextField(blank=True, null=True)

    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )
    amount_paid = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-order_number"]

    def __str__(self) -> str:
        return f"Order<#{self.order_number} {self.customer_name} {self.status}>"

    @classmethod
    def next_order_number(cls) -> int:
        """Next display number: one past the highest issued so far."""
        current = cls.objects.aggregate(m=models.Max("order_number"))["m"]
        return FIRST_ORDER_NUMBER if current is None else current + 1


class OrderItem(models.Model):
    """A named, quantified product line, independently markable as delivered."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    is_delivered = models.BooleanField(default=False)
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_items"
        ordering = ["position", "created_at"]

    def __str__(self):
        return f"{self.quantity}x {self.name} (order #{self.order.order_number})"
