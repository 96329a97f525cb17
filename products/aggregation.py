"""Kitchen prep view: total quantity ordered per product name."""

from django.db.models import Sum

from orders.models import OrderItem


def aggregate_products():
    """[{"name", "quantity"}] over all items of all orders, biggest first.

    Names are grouped exactly as typed; merging "burger" with "Burgers" is
    the grouping collaborator's job.
    """
    rows = (
        OrderItem.objects.values("name")
        .annotate(quantity=Sum("quantity"))
        .order_by("-quantity", "name")
    )
    return [{"name": row["name"], "quantity": row["quantity"]} for row in rows]
