import logging

from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import DiningTable
from .serializers import DiningTableSerializer, TableCheckQuerySerializer, TableStatusUpdateSerializer
from .services import TableService

logger = logging.getLogger(__name__)


class DiningTableViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Read access to the table registry plus administrative status changes.
    Occupancy itself only changes through order placement and completion.
    """
    serializer_class = DiningTableSerializer
    filterset_fields = ['status', 'is_active']

    def get_queryset(self):
        return DiningTable.objects.all()

    @action(detail=False, methods=['get'])
    def check(self, request):
        query = TableCheckQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(TableService.check_availability(request.restaurant, query.validated_data['number']))

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        table = self.get_object()
        payload = TableStatusUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        table = TableService.set_status(table, payload.validated_data['status'])
        return Response(DiningTableSerializer(table).data)
