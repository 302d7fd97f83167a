import django_filters
from django.db.models import Q

from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    """Filters for the transaction list"""
    type = django_filters.CharFilter(method='filter_type', label='Type (comma separated)')
    customer = django_filters.NumberFilter(field_name='customer_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    status = django_filters.CharFilter(field_name='payment_status')
    search = django_filters.CharFilter(method='filter_search', label='Search')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='date__lte')

    class Meta:
        model = Transaction
        fields = ['type', 'customer', 'supplier', 'status', 'search', 'date_from', 'date_to']

    def filter_type(self, queryset, name, value):
        types = [part.strip().upper() for part in value.split(',') if part.strip()]
        if not types:
            return queryset
        return queryset.filter(type__in=types)

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(transaction_number__icontains=value) |
            Q(customer__name__icontains=value) |
            Q(supplier__name__icontains=value) |
            Q(notes__icontains=value) |
            Q(description__icontains=value)
        )
