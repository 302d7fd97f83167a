from rest_framework import serializers

from webill.tax.gst import get_gst_rates
from .models import Category, Item


class CategorySerializer(serializers.ModelSerializer):
    parent_name = serializers.CharField(source='parent.name', read_only=True, default=None)
    children_count = serializers.IntegerField(source='children.count', read_only=True)
    items_count = serializers.IntegerField(source='items.count', read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'parent', 'parent_name', 'children_count', 'items_count',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_parent(self, parent):
        if parent is None or self.instance is None:
            return parent
        if parent.pk == self.instance.pk:
            raise serializers.ValidationError("A category cannot be its own parent")
        if any(ancestor.pk == self.instance.pk for ancestor in parent.ancestors()):
            raise serializers.ValidationError("A category cannot be moved under one of its descendants")
        return parent


class ItemSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Item
        fields = [
            'id', 'name', 'description', 'sku', 'barcode', 'category', 'category_name',
            'unit_price', 'cost_price', 'stock_quantity', 'min_stock', 'unit', 'gst_rate',
            'hsn_code', 'is_service', 'is_active', 'is_low_stock', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_sku(self, value):
        # Blank SKUs are stored as NULL so the unique constraint ignores them
        value = (value or '').strip()
        return value or None

    def validate_unit_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Unit price cannot be negative")
        return value

    def validate_cost_price(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Cost price cannot be negative")
        return value

    def validate_gst_rate(self, value):
        if value not in get_gst_rates():
            allowed = ', '.join(str(rate) for rate in get_gst_rates())
            raise serializers.ValidationError(f"GST rate must be one of: {allowed}")
        return value
