"""
URL configuration for the WeBill backend.

Every app exposes its endpoints under the shared ``api/v1/`` prefix.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "WeBill Admin Panel"
admin.site.site_title = "WeBill Admin Portal"
admin.site.index_title = "Billing & Invoicing Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('webill.core.urls')),
    path('api/v1/', include('webill.tax.urls')),
    path('api/v1/', include('webill.parties.urls')),
    path('api/v1/', include('webill.catalog.urls')),
    path('api/v1/', include('webill.transactions.urls')),
    path('api/v1/', include('webill.invoices.urls')),
    path('api/v1/', include('webill.reports.urls')),
]
