from django.conf import settings
from django.db import models


def default_country():
    return settings.WEBILL_DEFAULT_COUNTRY


class Party(models.Model):
    """Customers, suppliers and vendors share one table, told apart by ``type``"""
    TYPE_CUSTOMER = 'CUSTOMER'
    TYPE_SUPPLIER = 'SUPPLIER'
    TYPE_VENDOR = 'VENDOR'
    TYPE_CHOICES = [
        (TYPE_CUSTOMER, 'Customer'),
        (TYPE_SUPPLIER, 'Supplier'),
        (TYPE_VENDOR, 'Vendor'),
    ]

    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_CUSTOMER)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=100, blank=True, null=True, default=default_country)
    postal_code = models.CharField(max_length=20, blank=True)
    tax_number = models.CharField(max_length=15, blank=True, help_text="GSTIN")
    payment_terms = models.PositiveIntegerField(null=True, blank=True, help_text="Credit period in days")
    credit_limit = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'parties'
        ordering = ['name']
        verbose_name_plural = 'parties'
        indexes = [
            models.Index(fields=['type'], name='parties_type_idx'),
            models.Index(fields=['name'], name='parties_name_idx'),
        ]
