import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.exceptions import InvalidOrderPayload
from orders.serializers import (
    OrderSnapshotSerializer,
    PaymentStatusSerializer,
    UpdateLineItemsSerializer,
    VerifyOtpSerializer,
)
from .retry import retry_once_on_conflict

logger = logging.getLogger(__name__)


class FulfillmentActionsMixin:
    """
    Order actions that go through the fulfillment service.

    This mixin provides action methods for OrderViewSet.
    """

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request: Request, pk=None) -> Response:
        result = retry_once_on_conflict(
            self.get_fulfillment_service().cancel_order,
            request.restaurant,
            pk,
            acting_user=request.user,
        )
        return Response({
            "order": OrderSnapshotSerializer(result.order).data,
            "warnings": list(result.warnings),
        })

    @action(detail=True, methods=["post"], url_path="verify-otp")
    def verify_otp(self, request: Request, pk=None) -> Response:
        """Complete a ready pickup order with its one-time code or scanned QR payload."""
        payload = VerifyOtpSerializer(data=request.data)
        if not payload.is_valid():
            raise InvalidOrderPayload.from_serializer_errors(payload.errors)

        result = retry_once_on_conflict(
            self.get_fulfillment_service().verify_pickup_otp,
            request.restaurant,
            order_id=pk,
            otp=payload.validated_data.get("otp"),
            qr_payload=payload.validated_data.get("qrPayload"),
            acting_user=request.user,
        )
        return Response({
            "verified": True,
            "order": OrderSnapshotSerializer(result.order).data,
            "warnings": list(result.warnings),
        })

    @action(detail=True, methods=["patch"], url_path="items")
    def items(self, request: Request, pk=None) -> Response:
        payload = UpdateLineItemsSerializer(data=request.data)
        if not payload.is_valid():
            raise InvalidOrderPayload.from_serializer_errors(payload.errors)

        order = retry_once_on_conflict(
            self.get_fulfillment_service().update_line_items,
            request.restaurant,
            pk,
            payload.to_line_items(),
            payload.validated_data["total"],
        )
        return Response(OrderSnapshotSerializer(order).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["patch"], url_path="payment")
    def payment(self, request: Request, pk=None) -> Response:
        """Update the payment status of a pickup order."""
        payload = PaymentStatusSerializer(data=request.data)
        if not payload.is_valid():
            raise InvalidOrderPayload.from_serializer_errors(payload.errors)

        order = retry_once_on_conflict(
            self.get_fulfillment_service().update_payment_status,
            request.restaurant,
            pk,
            payload.validated_data["status"],
        )
        return Response(OrderSnapshotSerializer(order).data, status=status.HTTP_200_OK)
