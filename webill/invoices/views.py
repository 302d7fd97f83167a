from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from webill.core.exceptions import InvalidInput
from webill.core.utils import paginate
from .filters import InvoiceFilter
from .models import Invoice
from .serializers import (
    InvoiceFromTransactionSerializer, InvoiceListSerializer, InvoiceReminderSerializer, InvoiceSerializer,
    InvoiceStatusSerializer, InvoiceWriteSerializer, PaymentSerializer,
)
from .services import (
    create_invoice, create_invoice_from_transaction, delete_invoice, invoice_analytics, reminder_stats,
    send_reminder, status_analytics, transition_invoice_status, update_invoice,
)


def _detail_queryset():
    return Invoice.objects.select_related('customer', 'transaction').prefetch_related('items__item', 'payments')


def _invoice_response(invoice, response_status=status.HTTP_200_OK):
    return Response(InvoiceSerializer(_detail_queryset().get(pk=invoice.pk)).data, status=response_status)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_list_create(request):
    """List invoices (customer, status, search) or create one from items"""
    if request.method == 'GET':
        queryset = Invoice.objects.select_related('customer').order_by('-issue_date', '-id')
        filterset = InvoiceFilter(request.query_params, queryset=queryset)
        return Response(paginate(request, filterset.qs, InvoiceListSerializer))

    serializer = InvoiceWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    invoice = create_invoice(serializer.validated_data, request=request)
    return _invoice_response(invoice, status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invoice_from_transaction(request):
    """Create a draft invoice from a sale"""
    serializer = InvoiceFromTransactionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    invoice = create_invoice_from_transaction(serializer.validated_data['transaction'], request=request)
    return _invoice_response(invoice, status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def invoice_detail(request, pk):
    """Retrieve, update or delete (drafts only) an invoice"""
    invoice = get_object_or_404(_detail_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(InvoiceSerializer(invoice).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = InvoiceWriteSerializer(invoice, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        invoice = update_invoice(invoice, serializer.validated_data, request=request)
        return _invoice_response(invoice)

    # DELETE
    delete_invoice(invoice, request=request)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'PUT', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_status(request, pk):
    """
    GET: status analytics and payment history.
    PUT/POST: change the status, optionally recording a payment when marking PAID.
    """
    if request.method == 'GET':
        invoice = get_object_or_404(_detail_queryset(), pk=pk)
        return Response({
            'invoice': InvoiceSerializer(invoice).data,
            'analytics': status_analytics(invoice),
            'payment_history': PaymentSerializer(invoice.payments.all(), many=True).data,
        })

    serializer = InvoiceStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    invoice, _payment = transition_invoice_status(
        pk,
        serializer.validated_data['status'],
        serializer.payment_details(),
        request=request,
    )
    return _invoice_response(invoice)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def invoice_reminder(request, pk):
    """Send a reminder email (POST) or read reminder stats (GET)"""
    invoice = get_object_or_404(Invoice.objects.select_related('customer'), pk=pk)

    if request.method == 'GET':
        return Response({
            'invoice': InvoiceListSerializer(invoice).data,
            'reminder_stats': reminder_stats(invoice),
        })

    serializer = InvoiceReminderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    reminder = send_reminder(
        invoice,
        reminder_type=serializer.validated_data['reminder_type'],
        custom_message=serializer.validated_data.get('custom_message'),
        request=request,
    )
    return Response({
        'success': True,
        'message': 'Reminder sent successfully',
        'reminder': reminder,
        'invoice': InvoiceListSerializer(invoice).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_payments(request, pk):
    invoice = get_object_or_404(Invoice, pk=pk)
    return Response(PaymentSerializer(invoice.payments.order_by('-payment_date', '-id'), many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_analytics_view(request):
    """Invoice statistics over the last ``period`` days (default 30)"""
    try:
        period = max(int(request.query_params.get('period', 30)), 1)
    except (TypeError, ValueError):
        period = 30
    customer_id = request.query_params.get('customer', None)
    if customer_id:
        try:
            customer_id = int(customer_id)
        except ValueError:
            raise InvalidInput('customer must be a numeric party id')
    return Response(invoice_analytics(period_days=period, customer_id=customer_id or None))
