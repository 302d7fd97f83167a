from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Staff account; ``is_staff`` unlocks business settings and the full audit trail"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """Key/value business settings such as ``business_gstin`` or ``invoice_footer``"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.key}={self.value[:30]}"

    @classmethod
    def get_value(cls, key, default=None):
        value = cls.objects.filter(key=key).values_list('value', flat=True).first()
        return default if value is None else value

    class Meta:
        db_table = 'settings'
        ordering = ['key']


class AuditLog(models.Model):
    """Audit log for critical billing operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_sale', 'Stock Removed (Sale)'),
        ('stock_purchase', 'Stock Added (Purchase)'),
        ('invoice_create', 'Invoice Created'),
        ('invoice_update', 'Invoice Updated'),
        ('invoice_delete', 'Invoice Deleted'),
        ('invoice_status', 'Invoice Status Changed'),
        ('invoice_reminder', 'Invoice Reminder Sent'),
        ('payment_add', 'Payment Added'),
        ('currency_migration', 'Currency Migration'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., party name, invoice number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., invoice or transaction number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_reference_idx'),
        ]
