"""Order lifecycle rules.

pending -> arrived -> delivered. The two named transitions below are the only
guarded way to move an order forward; they mutate the given Order instance and
leave persisting it to the caller. ``now`` is injectable for tests.
"""

from django.utils import timezone

from .exceptions import InvalidTransition
from .models import Order


def _now(now):
    return now if now is not None else timezone.now()


def mark_arrived(order: Order, now=None) -> Order:
    """pending -> arrived, stamping arrived_at once."""
    if order.status != Order.Status.PENDING:
        raise InvalidTransition("Order is not in pending status.")
    order.status = Order.Status.ARRIVED
    order.arrived_at = _now(now)
    return order


def mark_delivered(order: Order, now=None) -> Order:
    """arrived -> delivered, fixing wait_time in whole seconds since arrival.

    Without an arrived_at (only reachable through the unguarded generic
    update) wait_time stays unset.
    """
    if order.status != Order.Status.ARRIVED:
        raise InvalidTransition("Order is not in arrived status.")
    if order.arrived_at is not None:
        order.wait_time = seconds_between(order.arrived_at, _now(now))
    order.status = Order.Status.DELIVERED
    return order


def seconds_between(start, end) -> int:
    """Whole seconds from start to end, floored; never negative."""
    delta = end - start
    seconds = delta.days * 86400 + delta.seconds
    return max(seconds, 0)


def elapsed_seconds(order: Order, now=None) -> int:
    """Seconds shown on the order's timer.

    pending: 0. arrived: live time since arrival. delivered: the fixed wait_time.
    """
    if order.status == Order.Status.DELIVERED:
        return order.wait_time or 0
    if order.status == Order.Status.ARRIVED and order.arrived_at is not None:
        return seconds_between(order.arrived_at, _now(now))
    return 0


def format_elapsed(seconds: int) -> str:
    """MM:SS, minutes are not wrapped into hours."""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes:02d}:{secs:02d}"
