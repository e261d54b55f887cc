import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, status, viewsets
from rest_framework.request import Request
from rest_framework.response import Response

from orders.filters import OrderFilter
from orders.models import Order
from orders.serializers import OrderSnapshotSerializer
from orders.services import FulfillmentService
from .fulfillment_actions import FulfillmentActionsMixin
from .retry import retry_once_on_conflict

logger = logging.getLogger(__name__)


class OrderViewSet(
    FulfillmentActionsMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Orders for the restaurant resolved by RestaurantMiddleware.

    Reads use the restaurant-scoped manager. Every write goes through
    FulfillmentService so the order, table, ledger and kitchen rows change together.
    """
    serializer_class = OrderSnapshotSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = OrderFilter

    def get_queryset(self):
        return Order.objects.select_related("table", "customer")

    def get_fulfillment_service(self):
        return FulfillmentService()

    def create(self, request: Request, *args, **kwargs) -> Response:
        """Place an order. The payload is validated inside the service."""
        result = retry_once_on_conflict(
            self.get_fulfillment_service().place_order,
            request.restaurant,
            request.data,
            acting_user=request.user,
        )
        return Response(result.to_response(), status=status.HTTP_201_CREATED)
