import json
from unittest.mock import MagicMock, patch

import requests
from django.core.cache import cache
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders.models import Order, OrderItem


def create_order(customer_name, items):
    order = Order.objects.create(
        order_number=Order.next_order_number(),
        customer_name=customer_name,
        delivery_type=Order.DeliveryType.ON_SITE,
    )
    for position, (name, qty) in enumerate(items):
        OrderItem.objects.create(order=order, name=name, quantity=qty, position=position)
    return order


def ai_response(payload, ok=True, status_code=200):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = {"choices": [{"message": {"content": json.dumps(payload)}}]}
    return response


class ProductAggregateTests(APITestCase):
    def setUp(self):
        self.url = reverse("product-list")

    def test_sums_quantities_per_exact_name(self):
        create_order("Sarah", [("Burger", 2), ("Fries", 1)])
        create_order("Emma", [("Burger", 3), ("burger", 1), ("Soda", 1)])
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(
            res.data,
            [
                {"name": "Burger", "quantity": 5},
                {"name": "Fries", "quantity": 1},
                {"name": "Soda", "quantity": 1},
                {"name": "burger", "quantity": 1},
            ],
        )

    def test_empty(self):
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data, [])


@override_settings(OPENAI_API_KEY="test-key")
class ProductGroupTests(APITestCase):
    def setUp(self):
        cache.clear()
        self.url = reverse("product-ai-group")
        create_order("Sarah", [("Burger", 2), ("burgers", 3), ("Fries", 1)])
        create_order("Emma", [("hamburguer", 1), ("Soda", 4)])
        self.groups_payload = {
            "groups": [
                {"groupName": "Burger", "variants": ["burger", "Burgers", "hamburguer"]},
                {"groupName": "French Fries", "variants": ["fries"]},
            ]
        }

    def mock_session(self, *responses):
        patcher = patch("products.grouping.requests.Session")
        session_cls = patcher.start()
        self.addCleanup(patcher.stop)
        session = session_cls.return_value
        session.post.side_effect = list(responses)
        return session

    def test_groups_products(self):
        session = self.mock_session(ai_response(self.groups_payload))
        res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(res.data["cached"])
        self.assertIn("fetchedAt", res.data)

        groups = res.data["groups"]
        self.assertEqual(
            [(g["groupName"], g["totalQuantity"]) for g in groups],
            [("Burger", 6), ("Soda", 4), ("French Fries", 1)],
        )
        # unclaimed names get a group of their own
        self.assertEqual(groups[1]["items"], [{"name": "Soda", "quantity": 4}])

        kwargs = session.post.call_args.kwargs
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer test-key"})
        self.assertEqual(kwargs["json"]["response_format"], {"type": "json_object"})

    def test_second_call_served_from_cache(self):
        session = self.mock_session(ai_response(self.groups_payload))
        first = self.client.post(self.url, {}, format="json")
        second = self.client.post(self.url, {}, format="json")
        self.assertTrue(second.data["cached"])
        self.assertEqual(second.data["groups"], first.data["groups"])
        self.assertEqual(second.data["fetchedAt"], first.data["fetchedAt"])
        self.assertEqual(session.post.call_count, 1)

    def test_refresh_bypasses_cache(self):
        session = self.mock_session(ai_response(self.groups_payload), ai_response(self.groups_payload))
        self.client.post(self.url, {}, format="json")
        res = self.client.post(self.url, {"refresh": True}, format="json")
        self.assertFalse(res.data["cached"])
        self.assertEqual(session.post.call_count, 2)

    def test_new_products_invalidate_cache(self):
        session = self.mock_session(ai_response(self.groups_payload), ai_response(self.groups_payload))
        self.client.post(self.url, {}, format="json")
        create_order("Mike", [("Pizza", 1)])
        res = self.client.post(self.url, {}, format="json")
        self.assertFalse(res.data["cached"])
        self.assertEqual(session.post.call_count, 2)

    def test_search(self):
        self.mock_session(ai_response({"matches": ["Burger", "burgers", "hamburguer", "Nachos"]}))
        res = self.client.post(self.url, {"searchQuery": " burger "}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["searchQuery"], "burger")
        self.assertEqual(res.data["matchCount"], 3)
        self.assertEqual(res.data["totalQuantity"], 6)

    def test_blank_search_query_groups(self):
        self.mock_session(ai_response(self.groups_payload))
        res = self.client.post(self.url, {"searchQuery": "   "}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertIn("groups", res.data)

    def test_unparseable_answer_degrades(self):
        self.mock_session(ai_response({"something": "else"}))
        res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["degraded"])
        self.assertEqual(res.data["groups"], [])
        self.assertEqual(len(res.data["products"]), 5)

    def test_upstream_error_502(self):
        self.mock_session(ai_response({}, ok=False, status_code=500))
        res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_upstream_timeout_502(self):
        session = self.mock_session()
        session.post.side_effect = requests.Timeout()
        res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)

    @override_settings(OPENAI_API_KEY="")
    def test_missing_api_key_502(self):
        session = self.mock_session()
        res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertIn("OPENAI_API_KEY", str(res.data["detail"]))
        session.post.assert_not_called()

    def test_no_products_skips_service(self):
        Order.objects.all().delete()
        session = self.mock_session()
        res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data, {"groups": [], "searchResults": []})
        session.post.assert_not_called()

    def test_invalid_refresh_400(self):
        res = self.client.post(self.url, {"refresh": "yes"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
