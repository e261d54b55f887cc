from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "restaurant",
        "order_type",
        "status",
        "payment_status",
        "total_amount",
        "created_at",
    )
    list_filter = ("restaurant", "status", "order_type", "payment_status")
    search_fields = ("order_number", "customer_name", "customer_phone", "customer_email")
    readonly_fields = (
        "id",
        "order_number",
        "line_items_display",
        "otp",
        "discount_used",
        "points_earned",
        "created_at",
        "updated_at",
        "completed_at",
        "cancelled_at",
    )
    exclude = ("line_items", "qr_code")

    def get_queryset(self, request):
        return Order.all_objects.select_related("restaurant", "table", "customer")

    def line_items_display(self, obj):
        return ", ".join(f"{item.quantity} x {item.name}" for item in obj.line_items)

    line_items_display.short_description = "Line items"
