from django.contrib import admin
from django.utils.html import format_html

from . import ledger
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("name", "quantity", "is_delivered", "position")
    ordering = ("position", "created_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Order overview for the front desk:
    - List: number, customer, status (badge), delivery type, amounts, created
    - Filter: status, delivery type, created (date hierarchy)
    - Search: customer name, order number
    - Readonly: identifiers and the lifecycle timestamps
    """
    list_display = (
        "order_number",
        "customer_name",
        "status_badge",
        "delivery_type",
        "total_amount",
        "amount_paid",
        "balance",
        "created_at",
    )
    list_filter = ("status", "delivery_type", "created_at")
    date_hierarchy = "created_at"
    ordering = ("-created_at", "-order_number")
    search_fields = ("customer_name", "=order_number")
    inlines = [OrderItemInline]

    # arrived_at / wait_time are owned by the lifecycle transitions
    readonly_fields = (
        "id",
        "order_number",
        "arrived_at",
        "wait_time",
        "created_at",
        "updated_at",
    )
    fields = (
        "id",
        "order_number",
        "customer_name",
        "status",
        "estimated_arrival",
        "arrived_at",
        "wait_time",
        "delivery_type",
        "address",
        "total_amount",
        "amount_paid",
        "created_at",
        "updated_at",
    )

    def save_model(self, request, obj, form, change):
        if not change:
            obj.order_number = Order.next_order_number()
        super().save_model(request, obj, form, change)

    # Badges & Shortcuts
    def status_badge(self, obj):
        color = {
            "pending": "#737373",
            "arrived": "#d97706",
            "delivered": "#059669",
        }.get(obj.status, "#9ca3af")
        return format_html(
            '<span style="display:inline-block;padding:2px 8px;border-radius:999px;'
            'font-size:12px;font-weight:600;color:#fff;background:{};">{}</span>',
            color,
            obj.status,
        )
    status_badge.short_description = "status"
    status_badge.admin_order_field = "status"

    def balance(self, obj):
        return ledger.remaining_balance(obj)
    balance.short_description = "remaining"
