import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from webill.core.exceptions import ConstraintViolation
from webill.core.utils import create_audit_log, paginate
from .filters import ItemFilter
from .models import Category, Item
from .serializers import CategorySerializer, ItemSerializer

logger = logging.getLogger('webill.catalog')

CATEGORY_ITEMS_PREVIEW = 20


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List categories or create a new category"""
    if request.method == 'GET':
        queryset = Category.objects.select_related('parent').order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(description__icontains=search))
        parent = request.query_params.get('parent', None)
        if parent == 'root':
            queryset = queryset.filter(parent__isnull=True)
        elif parent:
            queryset = queryset.filter(parent_id=parent)
        serializer = CategorySerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = CategorySerializer(data=request.data)
    if serializer.is_valid():
        category = serializer.save()
        create_audit_log(request=request, action='create', model_name='Category',
                         object_id=category.id, object_name=category.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        data = CategorySerializer(category).data
        data['children'] = CategorySerializer(category.children.order_by('name'), many=True).data
        data['items'] = ItemSerializer(category.items.order_by('name')[:CATEGORY_ITEMS_PREVIEW], many=True).data
        return Response(data)

    if request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if category.children.exists():
        raise ConstraintViolation('Category has subcategories; move or delete them first')
    if category.items.exists():
        raise ConstraintViolation('Category has items; move or delete them first')
    category_id, category_name = category.id, category.name
    category.delete()
    create_audit_log(request=request, action='delete', model_name='Category',
                     object_id=category_id, object_name=category_name)
    return Response(status=status.HTTP_204_NO_CONTENT)


# Item views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def item_list_create(request):
    """List items (search, category, low_stock) or create a new item"""
    if request.method == 'GET':
        queryset = Item.objects.select_related('category').order_by('name', 'id')
        filterset = ItemFilter(request.query_params, queryset=queryset)
        return Response(paginate(request, filterset.qs, ItemSerializer))

    serializer = ItemSerializer(data=request.data)
    if serializer.is_valid():
        item = serializer.save()
        create_audit_log(request=request, action='create', model_name='Item',
                         object_id=item.id, object_name=item.name, object_reference=item.sku)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def item_detail(request, pk):
    """Retrieve, update or delete an item"""
    item = get_object_or_404(Item.objects.select_related('category'), pk=pk)

    if request.method == 'GET':
        return Response(ItemSerializer(item).data)

    if request.method in ('PUT', 'PATCH'):
        old_price = item.unit_price
        serializer = ItemSerializer(item, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            item = serializer.save()
            changes = {'fields': sorted(serializer.validated_data)}
            if item.unit_price != old_price:
                changes['unit_price'] = {'old': str(old_price), 'new': str(item.unit_price)}
            create_audit_log(request=request, action='update', model_name='Item',
                             object_id=item.id, object_name=item.name, changes=changes)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if item.transaction_lines.exists() or item.invoice_lines.exists():
        raise ConstraintViolation('Item is used on transactions or invoices; deactivate it instead')
    item_id, item_name = item.id, item.name
    item.delete()
    create_audit_log(request=request, action='delete', model_name='Item',
                     object_id=item_id, object_name=item_name)
    return Response(status=status.HTTP_204_NO_CONTENT)
