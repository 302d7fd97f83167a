import django_filters
from django.db.models import Q

from .models import Invoice


class InvoiceFilter(django_filters.FilterSet):
    """Filters for the invoice list"""
    customer = django_filters.NumberFilter(field_name='customer_id')
    status = django_filters.CharFilter(method='filter_status', label='Status (comma separated)')
    search = django_filters.CharFilter(method='filter_search', label='Search')
    issued_from = django_filters.DateFilter(field_name='issue_date', lookup_expr='date__gte')
    issued_to = django_filters.DateFilter(field_name='issue_date', lookup_expr='date__lte')

    class Meta:
        model = Invoice
        fields = ['customer', 'status', 'search', 'issued_from', 'issued_to']

    def filter_status(self, queryset, name, value):
        statuses = [part.strip().upper() for part in value.split(',') if part.strip()]
        if not statuses:
            return queryset
        return queryset.filter(status__in=statuses)

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(invoice_number__icontains=value) |
            Q(customer__name__icontains=value) |
            Q(notes__icontains=value) |
            Q(po_number__icontains=value) |
            Q(reference__icontains=value)
        )
