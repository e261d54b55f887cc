from rest_framework import serializers

from orders.line_items import ItemStatus
from orders.serializers import OrderSnapshotSerializer
from .models import KitchenStatus, KitchenWorkItem


class KitchenWorkItemSerializer(serializers.ModelSerializer):
    """Full work item as sent to displays, with the order it belongs to."""
    order = OrderSnapshotSerializer(read_only=True)
    order_id = serializers.UUIDField(read_only=True)
    staff_name = serializers.SerializerMethodField()
    prep_time_minutes = serializers.IntegerField(read_only=True)

    class Meta:
        model = KitchenWorkItem
        fields = [
            'id',
            'order_id',
            'status',
            'staff',
            'staff_name',
            'assigned_by',
            'assigned_at',
            'started_at',
            'ready_at',
            'completed_at',
            'cancelled_at',
            'notes',
            'prep_time_minutes',
            'order',
        ]
        read_only_fields = fields

    def get_staff_name(self, obj):
        if not obj.staff_id:
            return None
        return obj.staff.get_full_name() or obj.staff.get_username()


class AdvanceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=KitchenStatus.choices)


class AssignStaffSerializer(serializers.Serializer):
    staff_id = serializers.IntegerField()


class ItemStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[(value, value) for value in ItemStatus.values])
