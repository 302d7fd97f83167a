from decimal import Decimal

from django.db import models
from django.utils import timezone

from webill.catalog.models import Item
from webill.parties.models import Party

PAYMENT_METHOD_CHOICES = [
    ('CASH', 'Cash'),
    ('CARD', 'Card'),
    ('UPI', 'UPI'),
    ('BANK_TRANSFER', 'Bank Transfer'),
    ('CHEQUE', 'Cheque'),
    ('WALLET', 'Wallet'),
]


class Transaction(models.Model):
    """Sales, purchases, expenses and other income"""
    TYPE_SALE = 'SALE'
    TYPE_PURCHASE = 'PURCHASE'
    TYPE_EXPENSE = 'EXPENSE'
    TYPE_INCOME = 'INCOME'
    TYPE_CHOICES = [
        (TYPE_SALE, 'Sale'),
        (TYPE_PURCHASE, 'Purchase'),
        (TYPE_EXPENSE, 'Expense'),
        (TYPE_INCOME, 'Income'),
    ]
    ITEMIZED_TYPES = (TYPE_SALE, TYPE_PURCHASE)

    STATUS_PENDING = 'PENDING'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'
    STATUS_REFUNDED = 'REFUNDED'
    PAYMENT_STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REFUNDED, 'Refunded'),
    ]

    transaction_number = models.CharField(max_length=50, unique=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    date = models.DateTimeField(default=timezone.now)
    customer = models.ForeignKey(Party, on_delete=models.SET_NULL, null=True, blank=True, related_name='customer_transactions')
    supplier = models.ForeignKey(Party, on_delete=models.SET_NULL, null=True, blank=True, related_name='supplier_transactions')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=STATUS_PENDING)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, null=True, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True, help_text="Expense/income category")
    reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.transaction_number

    @property
    def party(self):
        return self.supplier if self.type == self.TYPE_PURCHASE else self.customer

    class Meta:
        db_table = 'transactions'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['type', '-date'], name='transactions_type_date_idx'),
            models.Index(fields=['payment_status'], name='transactions_status_idx'),
        ]


class TransactionItem(models.Model):
    """Line items of a sale or purchase"""
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='items')
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='transaction_lines')
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    cgst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    sgst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    igst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self):
        return f"{self.transaction.transaction_number} - {self.item.name} x {self.quantity}"

    @property
    def tax_amount(self):
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    class Meta:
        db_table = 'transaction_items'
        ordering = ['id']
