from rest_framework import serializers

from orders.models import Order, OrderType, PaymentStatus
from .line_item_serializers import LineItemInputSerializer, LineItemsField


class CustomerDetailsSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True, default=None)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True, default=None)


class LoyaltyRedemptionSerializer(serializers.Serializer):
    usePoints = serializers.BooleanField(default=False)
    pointsToRedeem = serializers.IntegerField(min_value=0, default=0)


class PlaceOrderSerializer(serializers.Serializer):
    """
    Shape of an order placement request. Checks here need no database access;
    table and balance checks happen in the fulfillment service.
    """
    orderType = serializers.ChoiceField(choices=OrderType.choices)
    tableNumber = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    items = LineItemInputSerializer(many=True)
    total = serializers.DecimalField(max_digits=10, decimal_places=2)
    customerDetails = CustomerDetailsSerializer(required=False)
    loyaltyPoints = LoyaltyRedemptionSerializer(required=False, allow_null=True)
    paymentMethod = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")
    paymentStatus = serializers.ChoiceField(choices=PaymentStatus.choices, required=False, default=PaymentStatus.UNPAID)
    pickupTime = serializers.DateTimeField(required=False, allow_null=True)
    specialInstructions = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

    def validate_total(self, value):
        if value <= 0:
            raise serializers.ValidationError("Total must be greater than zero")
        return value

    def validate(self, attrs):
        order_type = attrs['orderType']
        customer = attrs.get('customerDetails') or {}

        if order_type == OrderType.DINE_IN and not attrs.get('tableNumber'):
            raise serializers.ValidationError({'tableNumber': "Table number is required for dine-in orders"})

        if order_type == OrderType.PICKUP and not customer.get('phone'):
            raise serializers.ValidationError({'customerDetails': "A phone number is required for pickup orders"})

        if order_type != OrderType.DINE_IN and attrs.get('tableNumber'):
            raise serializers.ValidationError({'tableNumber': "Only dine-in orders can reference a table"})

        return attrs

    def to_line_items(self):
        item_serializer = LineItemInputSerializer()
        return [item_serializer.to_line_item(item) for item in self.validated_data['items']]


class UpdateLineItemsSerializer(serializers.Serializer):
    items = LineItemInputSerializer(many=True, allow_empty=False)
    total = serializers.DecimalField(max_digits=10, decimal_places=2)

    def validate_total(self, value):
        if value <= 0:
            raise serializers.ValidationError("Total must be greater than zero")
        return value

    def to_line_items(self):
        item_serializer = LineItemInputSerializer()
        return [item_serializer.to_line_item(item) for item in self.validated_data['items']]


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices)


class VerifyOtpSerializer(serializers.Serializer):
    """Accepts either a typed OTP or the raw payload read from the QR code"""
    otp = serializers.CharField(max_length=12, required=False)
    qrPayload = serializers.JSONField(required=False)

    def validate(self, attrs):
        if not attrs.get('otp') and not attrs.get('qrPayload'):
            raise serializers.ValidationError("Provide otp or qrPayload")
        return attrs


class OrderSnapshotSerializer(serializers.ModelSerializer):
    """Authoritative order state for displays and staff. Never includes the OTP."""
    line_items = LineItemsField()
    table_number = serializers.IntegerField(source='table.number', read_only=True, default=None)
    discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'order_number',
            'order_type',
            'status',
            'payment_status',
            'payment_method',
            'table_number',
            'customer',
            'customer_name',
            'customer_phone',
            'line_items',
            'total_amount',
            'currency',
            'discount_used',
            'discount_amount',
            'points_earned',
            'pickup_time',
            'special_instructions',
            'created_at',
            'updated_at',
            'completed_at',
            'cancelled_at',
        ]
        read_only_fields = fields
