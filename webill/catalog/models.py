from decimal import Decimal

from django.db import models


class Category(models.Model):
    """Item categories; a tree through ``parent``"""
    name = models.CharField(max_length=200, unique=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey('self', on_delete=models.PROTECT, null=True, blank=True, related_name='children')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def ancestors(self):
        """Parents from the nearest up to the root"""
        seen = {self.pk}
        node = self.parent
        while node is not None and node.pk not in seen:
            seen.add(node.pk)
            yield node
            node = node.parent

    class Meta:
        db_table = 'categories'
        ordering = ['name']
        verbose_name_plural = 'categories'


class Item(models.Model):
    """Goods and services that can be sold or purchased"""
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True)
    barcode = models.CharField(max_length=100, blank=True)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, null=True, blank=True, related_name='items')
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    stock_quantity = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=0)
    unit = models.CharField(max_length=20, default='pcs')
    gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    hsn_code = models.CharField(max_length=20, blank=True, help_text="HSN/SAC code")
    is_service = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    @property
    def is_low_stock(self):
        return not self.is_service and self.stock_quantity <= self.min_stock

    class Meta:
        db_table = 'items'
        ordering = ['name']
