"""
Application services for order operations.

Each function loads the order addressed by an OrderRef, applies a lifecycle or
ledger rule, persists the result and returns the refreshed Order. Store errors
(django.db.DatabaseError) propagate; the API exception handler logs them and
turns them into PersistenceFailure.

Known gap: payments are read-modify-write on amount_paid without row locking,
so two concurrent payments against the same order can lose one update.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import Prefetch

from . import ledger, lifecycle
from .exceptions import InvalidInput, NotFound
from .models import Order, OrderItem
from .refs import OrderRef

logger = logging.getLogger(__name__)


def _orders_queryset():
    return Order.objects.prefetch_related(
        Prefetch("items", queryset=OrderItem.objects.order_by("position", "created_at"))
    )


def list_orders():
    """All orders, newest first, items prefetched."""
    return _orders_queryset().order_by("-created_at", "-order_number")


def get_order(ref: OrderRef) -> Order:
    try:
        return _orders_queryset().get(**ref.lookup())
    except Order.DoesNotExist:
        raise NotFound(f"Order '{ref}' not found.")


def _clean_items(items):
    """Drop blank-named items and strip names, keeping the given order."""
    cleaned = []
    for item in items or []:
        name = (item.get("name") or "").strip()
        if not name:
            continue
        cleaned.append(
            {
                "name": name,
                "quantity": item.get("quantity", 1),
                "is_delivered": bool(item.get("is_delivered", False)),
            }
        )
    return cleaned


def _insert_items(order: Order, items) -> None:
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                name=item["name"],
                quantity=item["quantity"],
                is_delivered=item["is_delivered"],
                position=position,
            )
            for position, item in enumerate(items)
        ]
    )


def create_order(
    customer_name: str,
    items: list[dict],
    delivery_type: str,
    address: str | None = None,
    estimated_arrival: str | None = None,
    total_amount=None,
    amount_paid=None,
) -> Order:
    """Create a pending order with its items.

    The order row and its items are written in one transaction: if inserting
    the items fails, the order row is rolled back with them.
    """
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise InvalidInput({"customerName": "Customer name is required."})

    cleaned = _clean_items(items)
    if not cleaned:
        raise InvalidInput({"items": "At least one item with a name is required."})

    address = (address or "").strip() or None
    if delivery_type == Order.DeliveryType.DELIVERY and not address:
        raise InvalidInput({"address": "Address is required for delivery orders."})
    if delivery_type != Order.DeliveryType.DELIVERY:
        address = None

    try:
        with transaction.atomic():
            order = Order.objects.create(
                order_number=Order.next_order_number(),
                customer_name=customer_name,
                status=Order.Status.PENDING,
                estimated_arrival=estimated_arrival or None,
                delivery_type=delivery_type,
                address=address,
                total_amount=total_amount if total_amount is not None else 0,
                amount_paid=amount_paid if amount_paid is not None else 0,
            )
            _insert_items(order, cleaned)
    except DatabaseError:
        logger.error(
            "order_create_failed",
            extra={"error_type": "DatabaseError", "count": len(cleaned)},
            exc_info=True,
        )
        raise

    logger.info(
        "order_created",
        extra={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "count": len(cleaned),
        },
    )
    return get_order(OrderRef.by_id(order.id))


def _epoch_ms_to_datetime(value):
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise InvalidInput({"arrivedAt": "Timestamp is out of range."})


# generic-update field name -> model attribute
UPDATABLE_FIELDS = {
    "customer_name": "customer_name",
    "estimated_arrival": "estimated_arrival",
    "status": "status",
    "delivery_type": "delivery_type",
    "address": "address",
    "arrived_at": "arrived_at",
    "wait_time": "wait_time",
    "total_amount": "total_amount",
    "amount_paid": "amount_paid",
}


def update_order(ref: OrderRef, changes: dict) -> Order:
    """Apply a sparse set of field replacements.

    No lifecycle guard applies here: status, arrived_at and wait_time may be
    set to anything valid. A supplied ``items`` list replaces every existing
    item, so delivery checkmarks survive only if the caller re-sends them.
    An empty item list is accepted.
    """
    order = get_order(ref)
    changes = dict(changes)
    items = changes.pop("items", None)

    update_fields = []
    for key, attr in UPDATABLE_FIELDS.items():
        if key not in changes:
            continue
        value = changes[key]
        if key == "arrived_at":
            value = _epoch_ms_to_datetime(value)
        elif key == "customer_name":
            value = (value or "").strip()
            if not value:
                raise InvalidInput({"customerName": "Customer name must not be empty."})
        setattr(order, attr, value)
        update_fields.append(attr)

    if "delivery_type" in changes or "address" in changes:
        if order.delivery_type == Order.DeliveryType.DELIVERY:
            order.address = (order.address or "").strip() or None
            if not order.address:
                raise InvalidInput({"address": "Address is required for delivery orders."})
        else:
            order.address = None
        if "address" not in update_fields:
            update_fields.append("address")

    with transaction.atomic():
        if update_fields:
            order.save(update_fields=update_fields + ["updated_at"])
        if items is not None:
            cleaned = _clean_items(items)
            OrderItem.objects.filter(order=order).delete()
            _insert_items(order, cleaned)

    logger.info(
        "order_updated",
        extra={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "status": order.status,
        },
    )
    return get_order(OrderRef.by_id(order.id))


def delete_order(ref: OrderRef) -> None:
    """Permanently delete the order; its items go with it (FK cascade)."""
    order = get_order(ref)
    order_id, number = str(order.id), order.order_number
    order.delete()
    logger.info("order_deleted", extra={"order_id": order_id, "order_number": number})


def mark_arrived(ref: OrderRef, now=None) -> Order:
    order = get_order(ref)
    lifecycle.mark_arrived(order, now=now)
    order.save(update_fields=["status", "arrived_at", "updated_at"])
    logger.info(
        "order_arrived",
        extra={"order_id": str(order.id), "order_number": order.order_number},
    )
    return get_order(OrderRef.by_id(order.id))


def mark_delivered(ref: OrderRef, now=None) -> Order:
    order = get_order(ref)
    lifecycle.mark_delivered(order, now=now)
    order.save(update_fields=["status", "wait_time", "updated_at"])
    if order.wait_time is None:
        logger.warning(
            "order_delivered_without_arrival",
            extra={"order_id": str(order.id), "order_number": order.order_number},
        )
    logger.info(
        "order_delivered",
        extra={"order_id": str(order.id), "order_number": order.order_number},
    )
    return get_order(OrderRef.by_id(order.id))


def add_payment(ref: OrderRef, amount) -> Order:
    amount = ledger.validate_payment_amount(amount)
    order = get_order(ref)
    ledger.add_payment(order, amount)
    order.save(update_fields=["amount_paid", "updated_at"])
    logger.info(
        "payment_added",
        extra={
            "order_id": str(order.id),
            "amount": str(amount),
            "amount_paid": str(order.amount_paid),
        },
    )
    return get_order(OrderRef.by_id(order.id))


def pay_in_full(ref: OrderRef) -> Order:
    """Pay whatever is still owed on the order."""
    order = get_order(ref)
    amount = ledger.pay_in_full(order)
    order.save(update_fields=["amount_paid", "updated_at"])
    logger.info(
        "payment_added",
        extra={
            "order_id": str(order.id),
            "amount": str(amount),
            "amount_paid": str(order.amount_paid),
        },
    )
    return get_order(OrderRef.by_id(order.id))


def _get_item(order: Order, item_id) -> OrderItem:
    """Item by id, scoped to the order; foreign or malformed ids are NotFound."""
    try:
        return OrderItem.objects.get(id=item_id, order=order)
    except (OrderItem.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise NotFound(f"Item '{item_id}' not found in this order.")


def set_item_delivered(ref: OrderRef, item_id, is_delivered: bool) -> Order:
    if not isinstance(is_delivered, bool):
        raise InvalidInput({"isDelivered": "isDelivered must be a boolean."})
    order = get_order(ref)
    item = _get_item(order, item_id)
    item.is_delivered = is_delivered
    item.save(update_fields=["is_delivered"])
    logger.info(
        "item_delivery_set",
        extra={"order_id": str(order.id), "item_id": str(item.id), "status": is_delivered},
    )
    return get_order(OrderRef.by_id(order.id))


def mark_all_items_delivered(ref: OrderRef):
    """Check off every undelivered item, one update at a time.

    There is no enclosing transaction: an item that fails is reported and the
    ones already updated stay updated.

    Returns (order, updated_ids, failures).
    """
    order = get_order(ref)
    pending_ids = list(
        order.items.filter(is_delivered=False).values_list("id", flat=True)
    )
    updated, failures = [], []
    for item_id in pending_ids:
        try:
            set_item_delivered(OrderRef.by_id(order.id), item_id, True)
        except (DatabaseError, NotFound) as exc:
            logger.warning(
                "item_delivery_failed",
                extra={"order_id": str(order.id), "item_id": str(item_id), "error": str(exc)},
            )
            failures.append({"id": str(item_id), "error": str(exc)})
        else:
            updated.append(str(item_id))
    return get_order(OrderRef.by_id(order.id)), updated, failures
