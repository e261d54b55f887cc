from django.contrib import admin
from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'email', 'restaurant', 'total_orders', 'total_spent', 'last_order_date']
    list_filter = ['restaurant']
    search_fields = ['name', 'phone', 'email']
    readonly_fields = ['id', 'total_orders', 'total_spent', 'last_order_date', 'created_at', 'updated_at']

    def get_queryset(self, request):
        return Customer.all_objects.select_related('restaurant')
