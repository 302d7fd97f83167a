import django_filters
from django.db.models import F, Q

from .models import Item


class ItemFilter(django_filters.FilterSet):
    """Filters for the item list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    is_service = django_filters.BooleanFilter(field_name='is_service')

    class Meta:
        model = Item
        fields = ['search', 'category', 'low_stock', 'active', 'is_service']

    def filter_search(self, queryset, name, value):
        """Match name, SKU, barcode, HSN code or description"""
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(sku__icontains=value) |
            Q(barcode=value) |
            Q(hsn_code__icontains=value) |
            Q(description__icontains=value)
        )

    def filter_low_stock(self, queryset, name, value):
        """Goods whose stock is at or below their minimum"""
        if not value or value.lower() != 'true':
            return queryset
        return queryset.filter(is_service=False, stock_quantity__lte=F('min_stock'))

    def filter_active(self, queryset, name, value):
        if value is None or value == '':
            return queryset
        return queryset.filter(is_active=value.lower() == 'true')
