from django.contrib import admin
from .models import Party


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'phone', 'email', 'state', 'tax_number', 'is_active']
    list_filter = ['type', 'is_active', 'state']
    search_fields = ['name', 'phone', 'email', 'tax_number']
    ordering = ['name']
