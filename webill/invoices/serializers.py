from rest_framework import serializers

from webill.catalog.models import Item
from webill.core.serializers import StrictFieldsMixin
from webill.parties.models import Party
from webill.parties.serializers import PartySummarySerializer
from webill.transactions.models import PAYMENT_METHOD_CHOICES, Transaction
from .models import Invoice, InvoiceItem, Payment


class InvoiceItemSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    hsn_code = serializers.CharField(source='item.hsn_code', read_only=True)
    unit = serializers.CharField(source='item.unit', read_only=True)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = InvoiceItem
        fields = [
            'id', 'item', 'item_name', 'hsn_code', 'unit', 'description', 'quantity', 'unit_price',
            'discount', 'tax_rate', 'cgst_amount', 'sgst_amount', 'igst_amount', 'tax_amount', 'total_amount'
        ]


class PaymentSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source='invoice.invoice_number', read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            'id', 'payment_number', 'invoice', 'invoice_number', 'transaction', 'amount', 'payment_date',
            'payment_method', 'status', 'reference', 'notes', 'created_at'
        ]
        read_only_fields = fields


class InvoiceListSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.name', read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'customer', 'customer_name', 'transaction', 'issue_date', 'due_date',
            'status', 'subtotal', 'tax_amount', 'discount_amount', 'total_amount', 'paid_amount',
            'balance_amount', 'currency', 'created_at'
        ]


class InvoiceSerializer(InvoiceListSerializer):
    customer_detail = PartySummarySerializer(source='customer', read_only=True)
    transaction_number = serializers.CharField(source='transaction.transaction_number', read_only=True, default=None)
    items = InvoiceItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)

    class Meta(InvoiceListSerializer.Meta):
        fields = InvoiceListSerializer.Meta.fields + [
            'customer_detail', 'transaction_number', 'payment_terms', 'payment_terms_days', 'notes',
            'terms_conditions', 'exchange_rate', 'billing_address', 'shipping_address', 'place_of_supply',
            'po_number', 'reference', 'sent_date', 'reminders_sent', 'last_reminder_date', 'items',
            'payments', 'updated_at'
        ]


class InvoiceLineInputSerializer(StrictFieldsMixin, serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.all())
    description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, required=False)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class InvoiceWriteSerializer(StrictFieldsMixin, serializers.Serializer):
    """
    Request body for creating or editing an invoice. Status and payments are
    changed through the status endpoint, never here.
    """
    customer = serializers.PrimaryKeyRelatedField(queryset=Party.objects.all(), required=False)
    transaction = serializers.PrimaryKeyRelatedField(queryset=Transaction.objects.all(), required=False, allow_null=True)
    issue_date = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=[Invoice.STATUS_DRAFT, Invoice.STATUS_SENT], required=False)
    items = InvoiceLineInputSerializer(many=True, required=False)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    payment_terms = serializers.CharField(required=False, allow_blank=True, max_length=100)
    payment_terms_days = serializers.IntegerField(required=False, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)
    terms_conditions = serializers.CharField(required=False, allow_blank=True)
    exchange_rate = serializers.DecimalField(max_digits=12, decimal_places=6, required=False, min_value=0)
    billing_address = serializers.CharField(required=False, allow_blank=True)
    shipping_address = serializers.CharField(required=False, allow_blank=True)
    place_of_supply = serializers.CharField(required=False, allow_blank=True, max_length=100)
    po_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=100)

    def validate(self, attrs):
        if self.instance is None:
            if 'customer' not in attrs:
                raise serializers.ValidationError({'customer': 'This field is required.'})
            if not attrs.get('items'):
                raise serializers.ValidationError({'items': 'An invoice needs at least one item.'})
        else:
            for field in ('status', 'transaction'):
                if field in attrs:
                    raise serializers.ValidationError({field: 'This field cannot be changed here.'})
            if 'items' in attrs and not attrs['items']:
                raise serializers.ValidationError({'items': 'An invoice needs at least one item.'})

        customer = attrs.get('customer')
        if customer is not None and customer.type != Party.TYPE_CUSTOMER:
            raise serializers.ValidationError({'customer': f'{customer.name} is not a customer.'})
        return attrs


class InvoiceFromTransactionSerializer(StrictFieldsMixin, serializers.Serializer):
    transaction = serializers.IntegerField()


class InvoiceStatusSerializer(StrictFieldsMixin, serializers.Serializer):
    """Body of a status change; an unknown status is reported as InvalidStatus by the service"""
    status = serializers.CharField()
    payment_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES, required=False, allow_null=True)
    payment_reference = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)

    def payment_details(self):
        data = self.validated_data
        return {
            'amount': data.get('payment_amount'),
            'method': data.get('payment_method'),
            'reference': data.get('payment_reference'),
        }


class InvoiceReminderSerializer(StrictFieldsMixin, serializers.Serializer):
    reminder_type = serializers.ChoiceField(choices=['payment', 'final_notice', 'thank_you'], default='payment')
    custom_message = serializers.CharField(required=False, allow_blank=True)
