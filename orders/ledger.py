"""Payment ledger.

Payments only ever add to amount_paid; the balance and the paid/partial/unpaid
classification are derived on read and never stored. Overpayment is allowed
and simply shows up as a negative remaining balance.
"""

from decimal import Decimal

from rest_framework import serializers

from .exceptions import InvalidInput
from .models import Order

PAID = "paid"
PARTIAL = "partial"
UNPAID = "unpaid"

# same shape as the amount_paid / total_amount columns
AMOUNT_MAX_DIGITS = 12
AMOUNT_DECIMAL_PLACES = 2
AMOUNT_LIMIT = Decimal(10) ** (AMOUNT_MAX_DIGITS - AMOUNT_DECIMAL_PLACES)

_amount_field = serializers.DecimalField(
    max_digits=AMOUNT_MAX_DIGITS,
    decimal_places=AMOUNT_DECIMAL_PLACES,
    min_value=0,
)


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value or 0))


def validate_payment_amount(value) -> Decimal:
    """A non-negative JSON number that fits the amount columns.

    Strings and booleans are rejected; so are amounts with more than two
    decimal places, which the column would otherwise round away.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInput({"amount": "Valid payment amount is required."})
    try:
        return _amount_field.run_validation(value)
    except serializers.ValidationError as exc:
        raise InvalidInput({"amount": exc.detail})


def add_payment(order: Order, amount) -> Order:
    """amount_paid += amount. Zero is accepted and changes nothing."""
    amount = validate_payment_amount(amount)
    new_total = _as_decimal(order.amount_paid) + amount
    if new_total >= AMOUNT_LIMIT:
        raise InvalidInput(
            {"amount": f"Total paid would exceed the maximum of {AMOUNT_LIMIT - Decimal('0.01')}."}
        )
    order.amount_paid = new_total
    return order


def remaining_balance(order: Order) -> Decimal:
    return _as_decimal(order.total_amount) - _as_decimal(order.amount_paid)


def payment_status(order: Order):
    """'paid' | 'partial' | 'unpaid', or None for orders without a price."""
    if _as_decimal(order.total_amount) == 0:
        return None
    if remaining_balance(order) <= 0:
        return PAID
    if _as_decimal(order.amount_paid) > 0:
        return PARTIAL
    return UNPAID


def is_paid_in_full(order: Order) -> bool:
    return remaining_balance(order) <= 0


def pay_in_full(order: Order) -> Decimal:
    """Apply exactly the outstanding balance. Returns the amount applied."""
    balance = remaining_balance(order)
    if balance <= 0:
        raise InvalidInput({"amount": "Order is already paid in full."})
    add_payment(order, balance)
    return balance


def is_ready_for_handoff(order: Order, items=None) -> bool:
    """All items delivered and nothing owed.

    This is the front-of-house check before handing an order over; the
    delivered transition itself does not require it.
    """
    if items is None:
        items = list(order.items.all())
    return is_paid_in_full(order) and all(item.is_delivered for item in items)
