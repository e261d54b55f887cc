from django.contrib import admin
from .models import RestaurantSettings


@admin.register(RestaurantSettings)
class RestaurantSettingsAdmin(admin.ModelAdmin):
    list_display = ['restaurant', 'currency', 'loyalty_enabled', 'earn_rate', 'point_expiry_days', 'updated_at']
    list_filter = ['loyalty_enabled', 'currency']
    search_fields = ['restaurant__name', 'restaurant__slug']

    def get_queryset(self, request):
        return RestaurantSettings.all_objects.select_related('restaurant')
