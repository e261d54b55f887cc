from django.contrib import admin, messages

from orders.services import FulfillmentService
from .exceptions import InvalidTransition
from .models import KitchenWorkItem


@admin.register(KitchenWorkItem)
class KitchenWorkItemAdmin(admin.ModelAdmin):
    list_display = ['order', 'restaurant', 'status', 'staff', 'assigned_at', 'ready_at', 'completed_at']
    list_filter = ['restaurant', 'status']
    search_fields = ['order__order_number']
    readonly_fields = [
        'id', 'order', 'restaurant', 'status', 'assigned_at', 'started_at',
        'ready_at', 'completed_at', 'cancelled_at', 'prep_time_minutes'
    ]
    actions = ['reset_to_pending']

    def get_queryset(self, request):
        return KitchenWorkItem.all_objects.select_related('order', 'restaurant', 'staff')

    @admin.action(description="Reset selected kitchen orders to pending")
    def reset_to_pending(self, request, queryset):
        service = FulfillmentService()
        reset = 0
        for work_item in queryset:
            try:
                service.reset_kitchen_item(work_item.restaurant, work_item.order_id)
                reset += 1
            except InvalidTransition as e:
                self.message_user(request, f"{work_item.order.order_number}: {e.message}", level=messages.WARNING)
        if reset:
            self.message_user(request, f"Reset {reset} kitchen order(s) to pending")
