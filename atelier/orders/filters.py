import django_filters
from django.db.models import Q

from .models import Order


class OrderFilter(django_filters.FilterSet):
    """Filters for the admin order list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.MultipleChoiceFilter(choices=Order.STATUS_CHOICES)
    artwork = django_filters.NumberFilter(field_name='artwork_id', lookup_expr='exact')
    created_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    starts_from = django_filters.DateFilter(field_name='scheduled_start_date', lookup_expr='gte')
    starts_to = django_filters.DateFilter(field_name='scheduled_start_date', lookup_expr='lte')

    class Meta:
        model = Order
        fields = ['search', 'status', 'artwork', 'payment_method']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value)
            | Q(whatsapp__icontains=value)
            | Q(buyer_name__icontains=value)
            | Q(artwork__title__icontains=value)
        )
