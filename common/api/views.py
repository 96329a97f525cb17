import logging
import math

from django.db import DatabaseError
from django.db.models import Avg, Count, Q
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework import status

from orders.models import Order

logger = logging.getLogger(__name__)


class StatsAPIView(APIView):
    """
    GET /api/stats/

    Returns order counters for the dashboard:
    - total_orders
    - pending_orders / arrived_orders / delivered_orders: counts by status
    - delivery_orders / onsite_orders: counts by delivery type
    - avg_wait_time: mean wait time in whole seconds over orders that have
      one, or null when none do
    """

    def get(self, request):
        """
        Compute and return the counters in a single aggregate query.
        """
        try:
            agg = Order.objects.aggregate(
                total_orders=Count("id"),
                pending_orders=Count("id", filter=Q(status=Order.Status.PENDING)),
                arrived_orders=Count("id", filter=Q(status=Order.Status.ARRIVED)),
                delivered_orders=Count("id", filter=Q(status=Order.Status.DELIVERED)),
                delivery_orders=Count("id", filter=Q(delivery_type=Order.DeliveryType.DELIVERY)),
                onsite_orders=Count("id", filter=Q(delivery_type=Order.DeliveryType.ON_SITE)),
                avg_wait_time=Avg("wait_time"),
            )
        except DatabaseError:
            logger.error("stats_failed", exc_info=True)
            return Response(
                {"detail": "Failed to fetch statistics"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        avg = agg["avg_wait_time"]
        # half-up, so 12.5 -> 13
        agg["avg_wait_time"] = math.floor(float(avg) + 0.5) if avg is not None else None
        return Response(agg, status=status.HTTP_200_OK)
