"""
Orders serializers package.
"""

from .line_item_serializers import (
    AddonInputSerializer,
    LineItemInputSerializer,
    LineItemsField,
)

from .order_serializers import (
    CustomerDetailsSerializer,
    LoyaltyRedemptionSerializer,
    PlaceOrderSerializer,
    UpdateLineItemsSerializer,
    PaymentStatusSerializer,
    VerifyOtpSerializer,
    OrderSnapshotSerializer,
)

__all__ = [
    # Line items
    'AddonInputSerializer',
    'LineItemInputSerializer',
    'LineItemsField',
    # Orders
    'CustomerDetailsSerializer',
    'LoyaltyRedemptionSerializer',
    'PlaceOrderSerializer',
    'UpdateLineItemsSerializer',
    'PaymentStatusSerializer',
    'VerifyOtpSerializer',
    'OrderSnapshotSerializer',
]
