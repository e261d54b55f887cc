from django.contrib import admin

from .models import DiningTable


@admin.register(DiningTable)
class DiningTableAdmin(admin.ModelAdmin):
    list_display = ['number', 'restaurant', 'capacity', 'status', 'is_active', 'updated_at']
    list_filter = ['restaurant', 'status', 'is_active']
    ordering = ['restaurant', 'number']

    def get_queryset(self, request):
        return DiningTable.all_objects.select_related('restaurant')
