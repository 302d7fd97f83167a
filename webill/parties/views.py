import logging

from django.db.models import Q, ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from webill.core.exceptions import ConstraintViolation
from webill.core.utils import create_audit_log, paginate
from .models import Party
from .serializers import PartySerializer

logger = logging.getLogger('webill.parties')

RECENT_ACTIVITY_LIMIT = 10


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def party_list_create(request):
    """List parties (filter by type, search by name/email/phone) or create one"""
    if request.method == 'GET':
        queryset = Party.objects.all().order_by('name', 'id')

        party_type = request.query_params.get('type', None)
        if party_type:
            queryset = queryset.filter(type=party_type.upper())

        is_active = request.query_params.get('is_active', None)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in ('true', '1'))

        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )
        return Response(paginate(request, queryset, PartySerializer))

    serializer = PartySerializer(data=request.data)
    if serializer.is_valid():
        party = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Party',
            object_id=party.id,
            object_name=party.name,
            changes={'type': party.type},
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def party_detail(request, pk):
    """Retrieve (with recent activity), update or delete a party"""
    party = get_object_or_404(Party, pk=pk)

    if request.method == 'GET':
        from webill.invoices.serializers import InvoiceListSerializer
        from webill.transactions.serializers import TransactionListSerializer

        data = PartySerializer(party).data
        data['recent_sales'] = TransactionListSerializer(
            party.customer_transactions.order_by('-date', '-id')[:RECENT_ACTIVITY_LIMIT], many=True
        ).data
        data['recent_purchases'] = TransactionListSerializer(
            party.supplier_transactions.order_by('-date', '-id')[:RECENT_ACTIVITY_LIMIT], many=True
        ).data
        data['recent_invoices'] = InvoiceListSerializer(
            party.invoices.order_by('-issue_date', '-id')[:RECENT_ACTIVITY_LIMIT], many=True
        ).data
        return Response(data)

    if request.method in ('PUT', 'PATCH'):
        serializer = PartySerializer(party, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Party',
                object_id=party.id,
                object_name=party.name,
                changes={'fields': sorted(serializer.validated_data)},
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    party_id, party_name = party.id, party.name
    try:
        party.delete()
    except ProtectedError:
        raise ConstraintViolation('Party has invoices and cannot be deleted; deactivate it instead')
    create_audit_log(
        request=request,
        action='delete',
        model_name='Party',
        object_id=party_id,
        object_name=party_name,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)
