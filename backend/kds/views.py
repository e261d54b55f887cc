import logging

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from orders.exceptions import InvalidOrderPayload
from orders.serializers import OrderSnapshotSerializer
from orders.services import FulfillmentService
from orders.views.retry import retry_once_on_conflict
from .serializers import (
    AdvanceStatusSerializer,
    AssignStaffSerializer,
    ItemStatusSerializer,
    KitchenWorkItemSerializer,
)
from .services import KitchenWorkQueueService

logger = logging.getLogger(__name__)


def _transition_response(result):
    return Response({
        'kitchenOrder': KitchenWorkItemSerializer(result.work_item).data,
        'order': OrderSnapshotSerializer(result.order).data,
        'warnings': list(result.warnings),
    }, status=status.HTTP_200_OK)


@api_view(['GET'])
def active_kitchen_orders(request):
    """Work items still in the kitchen, oldest first. Displays call this to resynchronize."""
    items = KitchenWorkQueueService.active_items(request.restaurant)
    return Response(KitchenWorkItemSerializer(items, many=True).data)


@api_view(['POST'])
def advance_status(request, order_id):
    payload = AdvanceStatusSerializer(data=request.data)
    if not payload.is_valid():
        raise InvalidOrderPayload.from_serializer_errors(payload.errors)

    result = retry_once_on_conflict(
        FulfillmentService().advance_kitchen_status,
        request.restaurant,
        order_id,
        payload.validated_data['status'],
        acting_user=request.user,
    )
    return _transition_response(result)


@api_view(['POST'])
def assign_staff(request, order_id):
    payload = AssignStaffSerializer(data=request.data)
    if not payload.is_valid():
        raise InvalidOrderPayload.from_serializer_errors(payload.errors)

    staff = get_user_model().objects.filter(pk=payload.validated_data['staff_id'], is_active=True).first()
    if staff is None:
        raise InvalidOrderPayload(
            "Unknown staff member",
            details={"fields": {"staff_id": ["No active user with this id"]}},
        )

    result = retry_once_on_conflict(
        FulfillmentService().assign_kitchen_staff,
        request.restaurant,
        order_id,
        staff,
        acting_user=request.user,
    )
    return _transition_response(result)


@api_view(['PATCH'])
def mark_item(request, order_id, item_index):
    """Mark one line item of an order pending or fulfilled."""
    payload = ItemStatusSerializer(data=request.data)
    if not payload.is_valid():
        raise InvalidOrderPayload.from_serializer_errors(payload.errors)

    result = retry_once_on_conflict(
        FulfillmentService().mark_item,
        request.restaurant,
        order_id,
        item_index,
        payload.validated_data['status'],
    )
    return _transition_response(result)
