"""Products API views.

GET returns the kitchen prep list (quantity per product name); POST on the
ai-group route clusters similar names or answers a free-text search through
the grouping service.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.exceptions import InvalidInput
from products.aggregation import aggregate_products
from products.grouping import group_products, search_products


class ProductAggregateAPIView(APIView):
    """GET /api/products/ -> [{"name", "quantity"}] sorted by quantity desc."""

    def get(self, request):
        return Response(aggregate_products(), status=status.HTTP_200_OK)


class ProductGroupAPIView(APIView):
    """POST /api/products/ai-group/ {"searchQuery"?: str, "refresh"?: bool}.

    With a non-blank searchQuery: matching products and their total quantity.
    Otherwise: grouped products, served from cache while fresh.
    """

    def post(self, request):
        data = request.data if isinstance(request.data, dict) else {}
        query = data.get("searchQuery")
        if query is not None and not isinstance(query, str):
            raise InvalidInput({"searchQuery": "Must be a string."})
        refresh = data.get("refresh", False)
        if not isinstance(refresh, bool):
            raise InvalidInput({"refresh": "Must be a boolean."})

        if query and query.strip():
            result = search_products(query.strip())
        else:
            result = group_products(refresh=refresh)
        return Response(result, status=status.HTTP_200_OK)
