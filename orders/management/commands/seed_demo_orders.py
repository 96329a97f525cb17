from django.core.management.base import BaseCommand

from orders import services
from orders.models import Order

DEMO_ORDERS = [
    {
        "customer_name": "Sarah Johnson",
        "items": [
            {"name": "Burger", "quantity": 2},
            {"name": "French Fries", "quantity": 1},
            {"name": "Coca-Cola", "quantity": 2},
        ],
        "delivery_type": "on-site",
        "estimated_arrival": "12:30",
        "total_amount": 48000,
    },
    {
        "customer_name": "Michael Chen",
        "items": [
            {"name": "Pizza Margherita", "quantity": 1},
            {"name": "Caesar Salad", "quantity": 1},
        ],
        "delivery_type": "delivery",
        "address": "Calle 45 #12-30",
        "estimated_arrival": "12:45",
        "total_amount": 52000,
        "amount_paid": 20000,
    },
    {
        "customer_name": "Emma Davis",
        "items": [
            {"name": "burgers", "quantity": 3},
            {"name": "fries", "quantity": 2},
        ],
        "delivery_type": "on-site",
        "estimated_arrival": "13:00",
    },
    {
        "customer_name": "James Wilson",
        "items": [{"name": "Hamburguer", "quantity": 1}],
        "delivery_type": "on-site",
        "total_amount": 18000,
        "amount_paid": 18000,
    },
]


class Command(BaseCommand):
    help = "Create demo pre-orders for trying out the API."

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Delete every existing order (and its items) first.",
        )

    def handle(self, *args, **options):
        if options["reset"]:
            deleted, _ = Order.objects.all().delete()
            self.stdout.write(f"Deleted {deleted} rows")

        for cfg in DEMO_ORDERS:
            if Order.objects.filter(customer_name=cfg["customer_name"]).exists():
                self.stdout.write(f"Order for '{cfg['customer_name']}' already exists")
                continue
            order = services.create_order(**cfg)
            self.stdout.write(
                self.style.SUCCESS(f"Created order #{order.order_number} for '{order.customer_name}'")
            )

        self.stdout.write(self.style.SUCCESS("Demo orders ready."))
