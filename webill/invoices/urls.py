from django.urls import path
from .views import (
    invoice_list_create, invoice_from_transaction, invoice_detail, invoice_status,
    invoice_reminder, invoice_payments, invoice_analytics_view,
)

urlpatterns = [
    path('invoices/', invoice_list_create, name='invoice-list-create'),
    path('invoices/from-transaction/', invoice_from_transaction, name='invoice-from-transaction'),
    path('invoices/analytics/', invoice_analytics_view, name='invoice-analytics'),
    path('invoices/<int:pk>/', invoice_detail, name='invoice-detail'),
    path('invoices/<int:pk>/status/', invoice_status, name='invoice-status'),
    path('invoices/<int:pk>/reminder/', invoice_reminder, name='invoice-reminder'),
    path('invoices/<int:pk>/payments/', invoice_payments, name='invoice-payments'),
]
