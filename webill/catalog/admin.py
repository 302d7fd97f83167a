from django.contrib import admin
from .models import Category, Item


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'parent', 'created_at']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'category', 'unit_price', 'stock_quantity', 'min_stock', 'gst_rate', 'is_active']
    list_filter = ['is_active', 'is_service', 'category', 'gst_rate']
    search_fields = ['name', 'sku', 'barcode', 'hsn_code']
    ordering = ['name']
