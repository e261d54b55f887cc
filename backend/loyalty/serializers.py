from rest_framework import serializers

from .models import LoyaltyLedgerEntry


class LoyaltyLedgerEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = LoyaltyLedgerEntry
        fields = ['id', 'entry_type', 'points', 'expires_at', 'order', 'created_at']
        read_only_fields = fields


class BalanceQuerySerializer(serializers.Serializer):
    phone = serializers.CharField(required=False, allow_blank=False)
    email = serializers.EmailField(required=False)
    customer_id = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if not any(attrs.get(key) for key in ('phone', 'email', 'customer_id')):
            raise serializers.ValidationError("Provide phone, email or customer_id")
        return attrs
