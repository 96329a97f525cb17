import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from orders import ledger, lifecycle
from orders.exceptions import InvalidInput, InvalidTransition, NotFound
from orders.models import Order, OrderItem
from orders.refs import OrderRef

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class OrderRefTests(SimpleTestCase):
    def test_parse_uuid(self):
        raw = "3f2b8c1e-9a4d-4e6f-b1a2-c3d4e5f60718"
        ref = OrderRef.parse(raw)
        self.assertTrue(ref.is_id)
        self.assertEqual(ref.lookup(), {"id": uuid.UUID(raw)})

    def test_parse_uuid_any_case(self):
        ref = OrderRef.parse("3F2B8C1E-9A4D-4E6F-B1A2-C3D4E5F60718")
        self.assertEqual(str(ref), "3f2b8c1e-9a4d-4e6f-b1a2-c3d4e5f60718")

    def test_parse_number(self):
        self.assertEqual(OrderRef.parse("1001").lookup(), {"order_number": 1001})
        self.assertEqual(OrderRef.parse("#1001").lookup(), {"order_number": 1001})

    def test_parse_garbage(self):
        for raw in ["", "abc", "##1001", "10a1", "3f2b8c1e-9a4d"]:
            with self.assertRaises(NotFound, msg=raw):
                OrderRef.parse(raw)


class LifecycleTests(SimpleTestCase):
    def test_arrive_then_deliver(self):
        order = Order(status=Order.Status.PENDING)
        lifecycle.mark_arrived(order, now=T0)
        self.assertEqual(order.status, Order.Status.ARRIVED)
        self.assertEqual(order.arrived_at, T0)

        lifecycle.mark_delivered(order, now=T0 + timedelta(seconds=125, milliseconds=999))
        self.assertEqual(order.status, Order.Status.DELIVERED)
        self.assertEqual(order.wait_time, 125)

    def test_guarded_transitions(self):
        with self.assertRaises(InvalidTransition):
            lifecycle.mark_delivered(Order(status=Order.Status.PENDING), now=T0)
        with self.assertRaises(InvalidTransition):
            lifecycle.mark_arrived(Order(status=Order.Status.ARRIVED, arrived_at=T0), now=T0)
        with self.assertRaises(InvalidTransition):
            lifecycle.mark_arrived(Order(status=Order.Status.DELIVERED), now=T0)

    def test_failed_arrival_keeps_timestamp(self):
        order = Order(status=Order.Status.ARRIVED, arrived_at=T0)
        with self.assertRaises(InvalidTransition):
            lifecycle.mark_arrived(order, now=T0 + timedelta(minutes=5))
        self.assertEqual(order.arrived_at, T0)

    def test_clock_skew_clamps_to_zero(self):
        order = Order(status=Order.Status.ARRIVED, arrived_at=T0)
        lifecycle.mark_delivered(order, now=T0 - timedelta(seconds=30))
        self.assertEqual(order.wait_time, 0)

    def test_elapsed_seconds(self):
        self.assertEqual(lifecycle.elapsed_seconds(Order(status=Order.Status.PENDING), now=T0), 0)
        arrived = Order(status=Order.Status.ARRIVED, arrived_at=T0)
        self.assertEqual(lifecycle.elapsed_seconds(arrived, now=T0 + timedelta(seconds=90)), 90)
        delivered = Order(status=Order.Status.DELIVERED, arrived_at=T0, wait_time=42)
        self.assertEqual(lifecycle.elapsed_seconds(delivered, now=T0 + timedelta(hours=3)), 42)

    def test_format_elapsed(self):
        self.assertEqual(lifecycle.format_elapsed(0), "00:00")
        self.assertEqual(lifecycle.format_elapsed(125), "02:05")
        self.assertEqual(lifecycle.format_elapsed(3725), "62:05")


class LedgerTests(SimpleTestCase):
    def test_validate_payment_amount(self):
        self.assertEqual(ledger.validate_payment_amount(0), Decimal("0"))
        self.assertEqual(ledger.validate_payment_amount(12.5), Decimal("12.5"))
        self.assertEqual(ledger.validate_payment_amount(9999999999), Decimal("9999999999"))
        for bad in [-1, "10", True, None, float("nan"), float("inf"), [5], 0.005, 1e10]:
            with self.assertRaises(InvalidInput, msg=repr(bad)):
                ledger.validate_payment_amount(bad)

    def test_add_payment_accumulates(self):
        order = Order(total_amount=Decimal("100"), amount_paid=Decimal("0"))
        ledger.add_payment(order, 30)
        ledger.add_payment(order, 20)
        self.assertEqual(order.amount_paid, Decimal("50"))
        self.assertEqual(ledger.remaining_balance(order), Decimal("50"))

    def test_add_payment_rejects_total_past_column_limit(self):
        order = Order(total_amount=Decimal("100"), amount_paid=Decimal("9999999999.50"))
        with self.assertRaises(InvalidInput):
            ledger.add_payment(order, 1)
        self.assertEqual(order.amount_paid, Decimal("9999999999.50"))

    def test_payment_status(self):
        cases = [
            ("0", "0", None),
            ("100", "0", ledger.UNPAID),
            ("100", "40", ledger.PARTIAL),
            ("100", "100", ledger.PAID),
            ("100", "130", ledger.PAID),
        ]
        for total, paid, expected in cases:
            order = Order(total_amount=Decimal(total), amount_paid=Decimal(paid))
            self.assertEqual(ledger.payment_status(order), expected, (total, paid))

    def test_pay_in_full(self):
        order = Order(total_amount=Decimal("80"), amount_paid=Decimal("25"))
        self.assertEqual(ledger.pay_in_full(order), Decimal("55"))
        self.assertTrue(ledger.is_paid_in_full(order))
        with self.assertRaises(InvalidInput):
            ledger.pay_in_full(order)

    def test_ready_for_handoff(self):
        order = Order(total_amount=Decimal("10"), amount_paid=Decimal("10"))
        done = OrderItem(name="Burger", quantity=1, is_delivered=True)
        open_item = OrderItem(name="Fries", quantity=1, is_delivered=False)
        self.assertTrue(ledger.is_ready_for_handoff(order, items=[done]))
        self.assertFalse(ledger.is_ready_for_handoff(order, items=[done, open_item]))
        order.amount_paid = Decimal("5")
        self.assertFalse(ledger.is_ready_for_handoff(order, items=[done]))
