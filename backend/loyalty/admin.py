from django.contrib import admin

from .models import LoyaltyLedgerEntry


@admin.register(LoyaltyLedgerEntry)
class LoyaltyLedgerEntryAdmin(admin.ModelAdmin):
    list_display = ['customer', 'entry_type', 'points', 'expires_at', 'order', 'created_at']
    list_filter = ['entry_type', 'restaurant']
    search_fields = ['customer__phone', 'customer__email']

    def get_queryset(self, request):
        return LoyaltyLedgerEntry.all_objects.select_related('customer', 'order')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
