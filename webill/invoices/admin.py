from django.contrib import admin
from .models import Invoice, InvoiceItem, Payment


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ['cgst_amount', 'sgst_amount', 'igst_amount', 'total_amount']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'customer', 'issue_date', 'due_date', 'status', 'total_amount', 'balance_amount']
    list_filter = ['status', 'issue_date']
    search_fields = ['invoice_number', 'customer__name', 'po_number', 'reference']
    ordering = ['-issue_date']
    inlines = [InvoiceItemInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['payment_number', 'invoice', 'transaction', 'amount', 'payment_method', 'status', 'payment_date']
    list_filter = ['status', 'payment_method', 'payment_date']
    search_fields = ['payment_number', 'reference', 'invoice__invoice_number']
    ordering = ['-payment_date']

    def has_change_permission(self, request, obj=None):
        return False
