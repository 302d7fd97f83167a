"""
Test utilities and factories for creating test data
"""
import random
import string
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from webill.catalog.models import Category, Item
from webill.core.utils import generate_invoice_number, generate_transaction_number
from webill.invoices.models import Invoice, InvoiceItem
from webill.parties.models import Party
from webill.transactions.models import Transaction, TransactionItem

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""
    __test__ = False

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_party(name=None, type=Party.TYPE_CUSTOMER, email=None, state='Karnataka', **kwargs):
        """Create a test party (a customer unless ``type`` says otherwise)"""
        if not name:
            name = f'Party_{TestDataFactory.random_string(6)}'
        if email is None:
            email = f'{name.lower()}@example.com'
        return Party.objects.create(name=name, type=type, email=email, state=state, **kwargs)

    @staticmethod
    def create_customer(**kwargs):
        return TestDataFactory.create_party(type=Party.TYPE_CUSTOMER, **kwargs)

    @staticmethod
    def create_supplier(**kwargs):
        return TestDataFactory.create_party(type=Party.TYPE_SUPPLIER, **kwargs)

    @staticmethod
    def create_category(name=None, parent=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name, parent=parent)

    @staticmethod
    def create_item(name=None, unit_price=Decimal('100.00'), gst_rate=Decimal('18.00'), stock_quantity=50, **kwargs):
        """Create a test item"""
        if not name:
            name = f'Item_{TestDataFactory.random_string(6)}'
        kwargs.setdefault('sku', f'SKU-{TestDataFactory.random_string(8).upper()}')
        return Item.objects.create(
            name=name,
            unit_price=unit_price,
            gst_rate=gst_rate,
            stock_quantity=stock_quantity,
            **kwargs
        )

    @staticmethod
    def create_transaction(type=Transaction.TYPE_SALE, customer=None, supplier=None, total_amount=Decimal('0.00'), **kwargs):
        """Create a bare transaction row (no stock movement, no lines)"""
        return Transaction.objects.create(
            transaction_number=generate_transaction_number(type),
            type=type,
            customer=customer,
            supplier=supplier,
            subtotal=kwargs.pop('subtotal', total_amount),
            total_amount=total_amount,
            **kwargs
        )

    @staticmethod
    def create_transaction_item(transaction, item, quantity=1, unit_price=Decimal('100.00'), tax_rate=Decimal('0.00'), **kwargs):
        kwargs.setdefault('total_amount', unit_price * quantity)
        return TransactionItem.objects.create(
            transaction=transaction, item=item, quantity=quantity, unit_price=unit_price, tax_rate=tax_rate, **kwargs
        )

    @staticmethod
    def create_invoice(customer=None, total_amount=Decimal('500.00'), status=Invoice.STATUS_DRAFT,
                       issue_date=None, payment_terms_days=30, **kwargs):
        """Create an invoice row with consistent totals"""
        if customer is None:
            customer = TestDataFactory.create_customer()
        issue_date = issue_date or timezone.now()
        kwargs.setdefault('paid_amount', Decimal('0.00'))
        kwargs.setdefault('balance_amount', total_amount - kwargs['paid_amount'])
        kwargs.setdefault('subtotal', total_amount)
        return Invoice.objects.create(
            invoice_number=generate_invoice_number(),
            customer=customer,
            issue_date=issue_date,
            due_date=kwargs.pop('due_date', issue_date + timedelta(days=payment_terms_days)),
            payment_terms_days=payment_terms_days,
            status=status,
            total_amount=total_amount,
            **kwargs
        )

    @staticmethod
    def create_invoice_item(invoice, item, quantity=1, unit_price=Decimal('100.00'), **kwargs):
        kwargs.setdefault('total_amount', unit_price * quantity)
        return InvoiceItem.objects.create(invoice=invoice, item=item, quantity=quantity, unit_price=unit_price, **kwargs)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
