from django.contrib import admin
from .models import Transaction, TransactionItem


class TransactionItemInline(admin.TabularInline):
    model = TransactionItem
    extra = 0
    readonly_fields = ['cgst_amount', 'sgst_amount', 'igst_amount', 'total_amount']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['transaction_number', 'type', 'date', 'customer', 'supplier', 'payment_status', 'total_amount']
    list_filter = ['type', 'payment_status', 'payment_method', 'date']
    search_fields = ['transaction_number', 'customer__name', 'supplier__name', 'reference']
    ordering = ['-date']
    inlines = [TransactionItemInline]
