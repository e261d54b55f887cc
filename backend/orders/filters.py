import django_filters

from .models import Order, OrderStatus, OrderType


class OrderFilter(django_filters.FilterSet):
    """
    Order list filters: status, channel, table and a created_at range.
    `active=true` limits the list to orders that are neither completed nor cancelled.
    """

    status = django_filters.MultipleChoiceFilter(choices=OrderStatus.choices)
    order_type = django_filters.ChoiceFilter(choices=OrderType.choices)
    table_number = django_filters.NumberFilter(field_name='table__number')
    created_at__gte = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_at__lte = django_filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')
    active = django_filters.BooleanFilter(method='filter_active')

    class Meta:
        model = Order
        fields = ['status', 'order_type', 'payment_status']

    def filter_active(self, queryset, name, value):
        terminal = [OrderStatus.COMPLETED, OrderStatus.CANCELLED]
        if value:
            return queryset.exclude(status__in=terminal)
        return queryset.filter(status__in=terminal)
