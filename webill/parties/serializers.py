from rest_framework import serializers

from webill.tax.gst import validate_gstin
from .models import Party


class PartySerializer(serializers.ModelSerializer):
    class Meta:
        model = Party
        fields = [
            'id', 'type', 'name', 'email', 'phone', 'address', 'city', 'state', 'country',
            'postal_code', 'tax_number', 'payment_terms', 'credit_limit', 'notes',
            'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_tax_number(self, value):
        value = (value or '').strip().upper()
        if value and not validate_gstin(value):
            raise serializers.ValidationError("Enter a valid 15-character GSTIN")
        return value

    def validate_credit_limit(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Credit limit cannot be negative")
        return value


class PartySummarySerializer(serializers.ModelSerializer):
    """Compact party representation embedded in documents"""
    class Meta:
        model = Party
        fields = ['id', 'name', 'type', 'email', 'phone', 'state', 'tax_number']
