from rest_framework import serializers

from .models import DiningTable
from .services import TableService


class DiningTableSerializer(serializers.ModelSerializer):
    class Meta:
        model = DiningTable
        fields = ['id', 'number', 'capacity', 'status', 'is_active', 'updated_at']
        read_only_fields = fields


class TableStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice.value for choice in TableService.ADMIN_STATUSES])


class TableCheckQuerySerializer(serializers.Serializer):
    number = serializers.IntegerField(min_value=1)
