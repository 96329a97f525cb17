import uuid
from unittest.mock import patch

from django.db import DatabaseError
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders import services
from orders.models import Order, OrderItem


def create_order(customer_name="Sarah", items=(("Burger", 2), ("Fries", 1), ("Soda", 2))):
    order = Order.objects.create(
        order_number=Order.next_order_number(),
        customer_name=customer_name,
        delivery_type=Order.DeliveryType.ON_SITE,
    )
    for position, (name, qty) in enumerate(items):
        OrderItem.objects.create(order=order, name=name, quantity=qty, position=position)
    return order


class OrderItemDeliveredTests(APITestCase):
    def setUp(self):
        self.order = create_order()
        self.item = self.order.items.get(name="Fries")
        self.url = reverse("order-item-detail", args=[str(self.order.id), str(self.item.id)])

    def test_check_item(self):
        res = self.client.patch(self.url, {"isDelivered": True}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        flags = {i["name"]: i["isDelivered"] for i in res.data["items"]}
        self.assertEqual(flags, {"Burger": False, "Fries": True, "Soda": False})
        self.assertFalse(res.data["allItemsDelivered"])

    def test_uncheck_item(self):
        OrderItem.objects.filter(id=self.item.id).update(is_delivered=True)
        res = self.client.patch(self.url, {"isDelivered": False}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertFalse(self.item.is_delivered)

    def test_order_status_not_touched(self):
        res = self.client.patch(self.url, {"isDelivered": True}, format="json")
        self.assertEqual(res.data["status"], "pending")

    def test_by_order_number(self):
        url = reverse("order-item-detail", args=[str(self.order.order_number), str(self.item.id)])
        res = self.client.patch(url, {"isDelivered": True}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)

    def test_non_boolean_400(self):
        for value in ["yes", 1, None]:
            res = self.client.patch(self.url, {"isDelivered": value}, format="json")
            self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST, value)
        self.item.refresh_from_db()
        self.assertFalse(self.item.is_delivered)

    def test_item_of_other_order_404(self):
        other = create_order("Emma", items=(("Pizza", 1),))
        pizza = other.items.get()
        url = reverse("order-item-detail", args=[str(self.order.id), str(pizza.id)])
        res = self.client.patch(url, {"isDelivered": True}, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        pizza.refresh_from_db()
        self.assertFalse(pizza.is_delivered)
        self.assertFalse(self.order.items.filter(is_delivered=True).exists())

    def test_unknown_item_404(self):
        url = reverse("order-item-detail", args=[str(self.order.id), str(uuid.uuid4())])
        res = self.client.patch(url, {"isDelivered": True}, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_malformed_item_id_404(self):
        url = reverse("order-item-detail", args=[str(self.order.id), "not-a-uuid"])
        res = self.client.patch(url, {"isDelivered": True}, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_unknown_order_404(self):
        url = reverse("order-item-detail", args=["424242", str(self.item.id)])
        res = self.client.patch(url, {"isDelivered": True}, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)


class OrderDeliverAllItemsTests(APITestCase):
    def setUp(self):
        self.order = create_order()
        self.url = reverse("order-items-deliver-all", args=[str(self.order.id)])

    def test_all_items_checked(self):
        OrderItem.objects.filter(order=self.order, name="Burger").update(is_delivered=True)
        res = self.client.post(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["updated"]), 2)
        self.assertEqual(res.data["failed"], [])
        self.assertTrue(res.data["order"]["allItemsDelivered"])
        self.assertFalse(self.order.items.filter(is_delivered=False).exists())

    def test_nothing_to_do(self):
        self.order.items.update(is_delivered=True)
        res = self.client.post(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["updated"], [])
        self.assertEqual(res.data["failed"], [])

    def test_partial_failure_keeps_successful_updates(self):
        soda = self.order.items.get(name="Soda")
        real = services.set_item_delivered

        def flaky(ref, item_id, is_delivered):
            if str(item_id) == str(soda.id):
                raise DatabaseError("write failed")
            return real(ref, item_id, is_delivered)

        with patch("orders.services.set_item_delivered", side_effect=flaky):
            res = self.client.post(self.url)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["updated"]), 2)
        self.assertEqual([f["id"] for f in res.data["failed"]], [str(soda.id)])
        delivered = set(self.order.items.filter(is_delivered=True).values_list("name", flat=True))
        self.assertEqual(delivered, {"Burger", "Fries"})
        self.assertFalse(res.data["order"]["allItemsDelivered"])
