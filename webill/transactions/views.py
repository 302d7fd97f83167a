from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from webill.core.utils import paginate
from .filters import TransactionFilter
from .models import Transaction
from .serializers import TransactionListSerializer, TransactionSerializer, TransactionWriteSerializer
from .services import create_transaction, delete_transaction, update_transaction


def _detail_queryset():
    return Transaction.objects.select_related('customer', 'supplier').prefetch_related('items__item', 'payments')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """List transactions or create a sale, purchase, expense or income"""
    if request.method == 'GET':
        queryset = Transaction.objects.select_related('customer', 'supplier').order_by('-date', '-id')
        filterset = TransactionFilter(request.query_params, queryset=queryset)
        return Response(paginate(request, filterset.qs, TransactionListSerializer))

    serializer = TransactionWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    txn = create_transaction(serializer.validated_data, request=request)
    return Response(TransactionSerializer(_detail_queryset().get(pk=txn.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve, update or delete a transaction"""
    txn = get_object_or_404(_detail_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(TransactionSerializer(txn).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = TransactionWriteSerializer(txn, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        txn = update_transaction(txn, serializer.validated_data, request=request)
        return Response(TransactionSerializer(_detail_queryset().get(pk=txn.pk)).data)

    # DELETE
    delete_transaction(txn, request=request)
    return Response(status=status.HTTP_204_NO_CONTENT)
