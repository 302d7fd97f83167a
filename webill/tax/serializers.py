from rest_framework import serializers

from webill.core.serializers import StrictFieldsMixin


class GSTCalculationSerializer(StrictFieldsMixin, serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    gst_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0)
    is_inter_state = serializers.BooleanField(required=False, default=False)
    seller_state = serializers.CharField(required=False, allow_blank=True)
    buyer_state = serializers.CharField(required=False, allow_blank=True)
