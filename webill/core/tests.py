"""
Tests for core: error presentation, audit helpers, document numbers,
authentication and the one-shot currency migration.
"""
import re
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated

from webill.catalog.models import Item
from webill.core.currency import migrate_amounts
from webill.core.exceptions import (
    ConstraintViolation, DuplicateInvoice, InvalidInput, InvalidStatus, InvoiceNotFound,
    billing_exception_handler,
)
from webill.core.models import AuditLog, Setting
from webill.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from webill.core.utils import (
    create_audit_log, generate_invoice_number, generate_payment_number, generate_transaction_number,
)
from webill.invoices.models import Invoice, Payment
from webill.parties.models import Party
from webill.transactions.models import Transaction


class ExceptionHandlerTests(TestCase):
    """Typed errors become {error, error_kind} responses"""

    def test_not_found(self):
        response = billing_exception_handler(InvoiceNotFound(), {'view': None})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Invoice not found', 'error_kind': 'NotFound'})

    def test_invalid_status_is_invalid_input(self):
        response = billing_exception_handler(InvalidStatus('Invalid status: PENDING'), {'view': None})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')
        self.assertEqual(response.data['error'], 'Invalid status: PENDING')

    def test_duplicate_invoice_carries_extra_fields(self):
        response = billing_exception_handler(DuplicateInvoice(invoice_id=7), {'view': None})
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error_kind'], 'ConstraintViolation')
        self.assertEqual(response.data['invoice_id'], 7)

    def test_constraint_violation(self):
        response = billing_exception_handler(ConstraintViolation('Only draft invoices can be deleted'), {'view': None})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'ConstraintViolation')

    def test_database_error_becomes_persistence_failure(self):
        with self.assertLogs('webill.core', level='ERROR'):
            response = billing_exception_handler(DatabaseError('disk full'), {'view': None})
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error_kind'], 'PersistenceFailure')

    def test_framework_errors_fall_through(self):
        response = billing_exception_handler(NotAuthenticated(), {'view': None})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn('error_kind', response.data)


class DocumentNumberTests(TestCase):
    def test_invoice_number_format(self):
        self.assertRegex(generate_invoice_number(), r'^INV-\d{4}-[0-9A-F]{8}$')

    def test_transaction_number_uses_type_prefix(self):
        number = generate_transaction_number('PURCHASE')
        self.assertTrue(re.match(r'^PUR-\d{8}-[0-9A-F]{8}$', number), number)

    def test_payment_numbers_are_unique(self):
        numbers = {generate_payment_number() for _ in range(50)}
        self.assertEqual(len(numbers), 50)


class AuditLogTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_create_audit_log(self):
        entry = create_audit_log(user=self.user, action='create', model_name='Party', object_id=5,
                                 object_name='Acme', changes={'type': 'CUSTOMER'})
        self.assertIsNotNone(entry)
        self.assertEqual(entry.object_id, '5')
        self.assertEqual(entry.user, self.user)

    def test_missing_fields_are_skipped(self):
        with self.assertLogs('webill.core', level='WARNING'):
            self.assertIsNone(create_audit_log(action='create', model_name='Party'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_non_staff_only_see_their_own_entries(self):
        other = TestDataFactory.create_user()
        create_audit_log(user=self.user, action='create', model_name='Party', object_id=1)
        create_audit_log(user=other, action='create', model_name='Party', object_id=2)
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([entry['object_id'] for entry in response.data['results']], ['1'])


class AuthTests(TestCase):
    def test_register_returns_tokens(self):
        response = AuthenticatedAPIClient().post('/api/v1/auth/register/', {
            'username': 'accountant',
            'email': 'accounts@example.com',
            'password': 'S3cure-pass-123',
            'password_confirm': 'S3cure-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['username'], 'accountant')

    def test_login_and_me(self):
        user = TestDataFactory.create_user(username='owner', password='testpass123')
        client = AuthenticatedAPIClient()
        response = client.post('/api/v1/auth/login/', {'username': 'owner', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = client.get('/api/v1/auth/me/')
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['id'], user.id)

    def test_endpoints_require_authentication(self):
        response = AuthenticatedAPIClient().get('/api/v1/parties/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class SettingAPITests(TestCase):
    def setUp(self):
        self.staff = TestDataFactory.create_user(is_staff=True)
        self.clerk = TestDataFactory.create_user()
        self.staff_client = AuthenticatedAPIClient().authenticate_user(self.staff)
        self.clerk_client = AuthenticatedAPIClient().authenticate_user(self.clerk)

    def test_list_includes_billing_defaults(self):
        Setting.objects.create(key='invoice_footer', value='Thank you for your business')
        response = self.clerk_client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['defaults']['business_state'], 'Karnataka')
        self.assertEqual(response.data['defaults']['currency'], 'INR')
        self.assertEqual(response.data['settings'][0]['key'], 'invoice_footer')

    def test_staff_create_and_update_by_key(self):
        response = self.staff_client.post('/api/v1/settings/', {
            'key': 'business_gstin', 'value': '29abcde1234f1z5',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['value'], '29ABCDE1234F1Z5')

        response = self.staff_client.patch('/api/v1/settings/business_gstin/', {'value': 'not-a-gstin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.staff_client.patch('/api/v1/settings/business_gstin/', {'value': '27ABCDE1234F1Z5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(model_name='Setting', action='update')
        self.assertEqual(log.changes, {'old': '29ABCDE1234F1Z5', 'new': '27ABCDE1234F1Z5'})

    def test_non_staff_cannot_write(self):
        response = self.clerk_client.post('/api/v1/settings/', {'key': 'invoice_footer', 'value': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'ConstraintViolation')
        self.assertFalse(Setting.objects.exists())


class CurrencyMigrationTests(TestCase):
    def setUp(self):
        self.customer = TestDataFactory.create_customer(credit_limit=Decimal('100.00'), country='USA')
        self.no_limit = TestDataFactory.create_customer(credit_limit=None, country='Nepal')
        self.item = TestDataFactory.create_item(unit_price=Decimal('10.00'), cost_price=Decimal('4.50'),
                                                gst_rate=Decimal('0.00'))
        self.invoice = TestDataFactory.create_invoice(customer=self.customer, total_amount=Decimal('100.00'),
                                                      paid_amount=Decimal('40.00'), currency='USD')
        self.payment = Payment.objects.create(payment_number='PAY-TEST-1', invoice=self.invoice,
                                              amount=Decimal('40.00'), payment_method='CASH')

    def test_multiplies_money_columns(self):
        summary = migrate_amounts('83.0')

        self.customer.refresh_from_db()
        self.item.refresh_from_db()
        self.invoice.refresh_from_db()
        self.payment.refresh_from_db()
        self.assertEqual(self.customer.credit_limit, Decimal('8300.00'))
        self.assertEqual(self.item.unit_price, Decimal('830.00'))
        self.assertEqual(self.item.cost_price, Decimal('373.50'))
        self.assertEqual(self.invoice.total_amount, Decimal('8300.00'))
        self.assertEqual(self.invoice.paid_amount, Decimal('3320.00'))
        self.assertEqual(self.invoice.balance_amount, Decimal('4980.00'))
        self.assertEqual(self.invoice.currency, 'INR')
        self.assertEqual(self.payment.amount, Decimal('3320.00'))
        self.assertEqual(summary['parties'], 1)
        self.assertEqual(summary['invoices'], 1)

    def test_null_credit_limit_stays_null(self):
        migrate_amounts('83.0')
        self.no_limit.refresh_from_db()
        self.assertIsNone(self.no_limit.credit_limit)

    def test_normalizes_countries_and_zero_gst(self):
        blank = TestDataFactory.create_customer(country='')
        missing = TestDataFactory.create_customer(country=None)
        migrate_amounts('83.0')

        for party in (self.customer, blank, missing):
            party.refresh_from_db()
            self.assertEqual(party.country, 'India')
        self.no_limit.refresh_from_db()
        self.assertEqual(self.no_limit.country, 'Nepal')
        self.item.refresh_from_db()
        self.assertEqual(self.item.gst_rate, Decimal('18.00'))

    @override_settings(WEBILL_DEFAULT_COUNTRY='Bharat')
    def test_countries_normalize_to_configured_default(self):
        blank = TestDataFactory.create_customer(country='')
        migrate_amounts('83.0')

        for party in (self.customer, blank):
            party.refresh_from_db()
            self.assertEqual(party.country, 'Bharat')
        self.no_limit.refresh_from_db()
        self.assertEqual(self.no_limit.country, 'Nepal')

    def test_running_twice_multiplies_twice(self):
        migrate_amounts('83.0')
        migrate_amounts('83.0')
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_limit, Decimal('688900.00'))

    def test_rejects_non_positive_rate(self):
        for rate in ('0', '-83'):
            with self.assertRaises(InvalidInput):
                migrate_amounts(rate)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_limit, Decimal('100.00'))

    def test_command_dry_run_rolls_back(self):
        out = StringIO()
        call_command('migrate_currency', '--rate', '83', '--dry-run', stdout=out)
        self.customer.refresh_from_db()
        self.invoice.refresh_from_db()
        self.assertEqual(self.customer.credit_limit, Decimal('100.00'))
        self.assertEqual(self.invoice.currency, 'USD')
        self.assertIn('Dry run complete', out.getvalue())
        self.assertFalse(AuditLog.objects.filter(action='currency_migration').exists())

    def test_command_applies_and_audits(self):
        call_command('migrate_currency', '--rate', '83', stdout=StringIO())
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_limit, Decimal('8300.00'))
        self.assertTrue(AuditLog.objects.filter(action='currency_migration').exists())

    def test_transactions_and_lines_are_converted(self):
        txn = TestDataFactory.create_transaction(type=Transaction.TYPE_SALE, customer=self.customer,
                                                 total_amount=Decimal('118.00'), tax_amount=Decimal('18.00'),
                                                 subtotal=Decimal('100.00'))
        line = TestDataFactory.create_transaction_item(txn, self.item, quantity=1, unit_price=Decimal('100.00'),
                                                       cgst_amount=Decimal('9.00'), sgst_amount=Decimal('9.00'),
                                                       total_amount=Decimal('118.00'))
        migrate_amounts('83.0')
        txn.refresh_from_db()
        line.refresh_from_db()
        self.assertEqual(txn.total_amount, Decimal('9794.00'))
        self.assertEqual(line.cgst_amount, Decimal('747.00'))
        self.assertEqual(Item.objects.get(pk=self.item.pk).unit_price, Decimal('830.00'))
        self.assertEqual(Party.objects.get(pk=self.customer.pk).country, 'India')
        self.assertEqual(Invoice.objects.get(pk=self.invoice.pk).currency, 'INR')
