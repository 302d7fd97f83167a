from rest_framework import serializers

from webill.catalog.models import Item
from webill.core.serializers import StrictFieldsMixin
from webill.invoices.models import Payment
from webill.parties.models import Party
from .models import PAYMENT_METHOD_CHOICES, Transaction, TransactionItem


class TransactionItemSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    item_sku = serializers.CharField(source='item.sku', read_only=True)
    hsn_code = serializers.CharField(source='item.hsn_code', read_only=True)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = TransactionItem
        fields = [
            'id', 'item', 'item_name', 'item_sku', 'hsn_code', 'quantity', 'unit_price', 'discount',
            'tax_rate', 'cgst_amount', 'sgst_amount', 'igst_amount', 'tax_amount', 'total_amount'
        ]


class TransactionPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'payment_number', 'amount', 'payment_date', 'payment_method', 'status', 'reference']


class TransactionListSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)

    class Meta:
        model = Transaction
        fields = [
            'id', 'transaction_number', 'type', 'date', 'customer', 'customer_name', 'supplier',
            'supplier_name', 'payment_status', 'payment_method', 'subtotal', 'tax_amount',
            'discount_amount', 'total_amount', 'category', 'reference', 'created_at'
        ]


class TransactionSerializer(TransactionListSerializer):
    items = TransactionItemSerializer(many=True, read_only=True)
    payments = TransactionPaymentSerializer(many=True, read_only=True)

    class Meta(TransactionListSerializer.Meta):
        fields = TransactionListSerializer.Meta.fields + ['description', 'notes', 'items', 'payments', 'updated_at']


class TransactionLineInputSerializer(StrictFieldsMixin, serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.all())
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, required=False)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class TransactionWriteSerializer(StrictFieldsMixin, serializers.Serializer):
    """Request body for creating or updating a transaction"""
    type = serializers.ChoiceField(choices=Transaction.TYPE_CHOICES, required=False)
    date = serializers.DateTimeField(required=False)
    customer = serializers.PrimaryKeyRelatedField(queryset=Party.objects.all(), required=False, allow_null=True)
    supplier = serializers.PrimaryKeyRelatedField(queryset=Party.objects.all(), required=False, allow_null=True)
    payment_status = serializers.ChoiceField(choices=Transaction.PAYMENT_STATUS_CHOICES, required=False)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES, required=False, allow_null=True)
    items = TransactionLineInputSerializer(many=True, required=False)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(required=False, allow_blank=True, max_length=100)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True)
    payment_reference = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if self.instance is None:
            txn_type = attrs.get('type')
            if not txn_type:
                raise serializers.ValidationError({'type': 'This field is required.'})
            if txn_type in Transaction.ITEMIZED_TYPES and not attrs.get('items'):
                raise serializers.ValidationError({'items': 'Sales and purchases need at least one item.'})
            if txn_type not in Transaction.ITEMIZED_TYPES and attrs.get('amount', attrs.get('total_amount')) is None:
                raise serializers.ValidationError({'amount': 'This field is required.'})
        elif 'items' in attrs and not attrs['items']:
            raise serializers.ValidationError({'items': 'Sales and purchases need at least one item.'})

        customer = attrs.get('customer')
        if customer is not None and customer.type != Party.TYPE_CUSTOMER:
            raise serializers.ValidationError({'customer': f'{customer.name} is not a customer.'})
        return attrs
