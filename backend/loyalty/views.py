import logging

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from customers.models import Customer
from customers.services import CustomerService
from settings.config import load_ordering_settings
from .serializers import BalanceQuerySerializer, LoyaltyLedgerEntrySerializer
from .services import LedgerService

logger = logging.getLogger(__name__)


@api_view(['GET'])
def loyalty_balance(request):
    """
    Available points for a customer looked up by phone, email or id.
    Unknown customers have a balance of zero.
    """
    query = BalanceQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    params = query.validated_data

    if params.get('customer_id'):
        customer = Customer.objects.filter(id=params['customer_id']).first()
    else:
        customer = CustomerService.find_customer(
            request.restaurant, phone=params.get('phone'), email=params.get('email')
        )

    if customer is None:
        return Response({'points': 0, 'history': []}, status=status.HTTP_200_OK)

    balance = LedgerService.get_available_balance(customer)
    history = LoyaltyLedgerEntrySerializer(LedgerService.history(customer), many=True).data
    return Response({'points': balance, 'history': history})


@api_view(['GET'])
def loyalty_settings(request):
    ordering_settings = load_ordering_settings(request.restaurant)
    return Response(ordering_settings.loyalty_config())
