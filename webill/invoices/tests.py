"""
Test suite for the invoices module
Tests: status transitions, payment recording, atomic persistence, invoice
creation from items and transactions, reminders and analytics
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core import mail
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from webill.core.exceptions import InvalidStatus, InvoiceNotFound, PersistenceFailure
from webill.core.models import AuditLog, Setting
from webill.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from webill.invoices.models import Invoice, Payment
from webill.invoices.services import (
    invoice_analytics, mark_overdue_invoices, send_reminder, status_analytics, transition_invoice_status,
)
from webill.invoices.status import apply_status_transition
from webill.transactions.models import Transaction
from webill.transactions.services import create_transaction


class ApplyStatusTransitionTests(TestCase):
    """Test the pure transition function (nothing is saved)"""

    def setUp(self):
        self.now = timezone.now()
        self.invoice = Invoice(
            pk=7,
            invoice_number='INV-2025-ABCD1234',
            status=Invoice.STATUS_DRAFT,
            total_amount=Decimal('500.00'),
            paid_amount=Decimal('0.00'),
            balance_amount=Decimal('500.00'),
            issue_date=self.now - timedelta(days=10),
            due_date=self.now + timedelta(days=20),
        )

    def test_paid_with_payment_details(self):
        result = apply_status_transition(
            self.invoice, 'PAID', {'amount': Decimal('500.00'), 'method': 'CASH'}, self.now
        )
        self.assertEqual(result.invoice_update['status'], 'PAID')
        self.assertEqual(result.invoice_update['paid_amount'], Decimal('500.00'))
        self.assertEqual(result.invoice_update['balance_amount'], Decimal('0.00'))

        payment = result.payment_to_create
        self.assertEqual(payment['invoice_id'], 7)
        self.assertEqual(payment['amount'], Decimal('500.00'))
        self.assertEqual(payment['payment_method'], 'CASH')
        self.assertEqual(payment['status'], Payment.STATUS_COMPLETED)
        self.assertEqual(payment['payment_date'], self.now)
        self.assertEqual(payment['notes'], 'Payment for invoice INV-2025-ABCD1234')
        self.assertTrue(payment['payment_number'].startswith('PAY-'))

    def test_paid_without_method_creates_no_payment(self):
        result = apply_status_transition(self.invoice, 'PAID', {'amount': Decimal('500.00')}, self.now)
        self.assertEqual(result.invoice_update['balance_amount'], Decimal('0.00'))
        self.assertIsNone(result.payment_to_create)

    def test_paid_without_amount_creates_no_payment(self):
        result = apply_status_transition(self.invoice, 'PAID', {'method': 'UPI'}, self.now)
        self.assertIsNone(result.payment_to_create)

    def test_sent_from_draft_stamps_sent_date(self):
        result = apply_status_transition(self.invoice, 'SENT', now=self.now)
        self.assertEqual(result.invoice_update['sent_date'], self.now)

    def test_sent_again_keeps_sent_date(self):
        self.invoice.status = Invoice.STATUS_SENT
        result = apply_status_transition(self.invoice, 'SENT', now=self.now)
        self.assertNotIn('sent_date', result.invoice_update)
        self.assertEqual(result.invoice_update['status'], 'SENT')

    def test_overdue_before_due_date_leaves_status(self):
        result = apply_status_transition(self.invoice, 'OVERDUE', now=self.now)
        self.assertNotIn('status', result.invoice_update)
        self.assertEqual(result.invoice_update['updated_at'], self.now)

    def test_overdue_after_due_date(self):
        result = apply_status_transition(self.invoice, 'OVERDUE', now=self.now + timedelta(days=21))
        self.assertEqual(result.invoice_update['status'], 'OVERDUE')

    def test_cancelled_resets_paid_amount(self):
        self.invoice.paid_amount = Decimal('200.00')
        result = apply_status_transition(self.invoice, 'CANCELLED', now=self.now)
        self.assertEqual(result.invoice_update['paid_amount'], Decimal('0.00'))
        self.assertEqual(result.invoice_update['balance_amount'], Decimal('500.00'))

    def test_invalid_status(self):
        for value in ('BOGUS', 'paid', ''):
            with self.assertRaises(InvalidStatus):
                apply_status_transition(self.invoice, value, now=self.now)

    def test_invoice_is_not_mutated(self):
        apply_status_transition(self.invoice, 'PAID', {'amount': Decimal('500'), 'method': 'CASH'}, self.now)
        self.assertEqual(self.invoice.status, Invoice.STATUS_DRAFT)
        self.assertEqual(self.invoice.paid_amount, Decimal('0.00'))


class TransitionInvoiceStatusTests(TestCase):
    """Test persisting status changes"""

    def setUp(self):
        self.invoice = TestDataFactory.create_invoice(total_amount=Decimal('500.00'), status=Invoice.STATUS_SENT)

    def test_paid_creates_payment(self):
        invoice, payment = transition_invoice_status(
            self.invoice.id, 'PAID', {'amount': Decimal('500.00'), 'method': 'CASH'}
        )
        self.assertEqual(invoice.status, Invoice.STATUS_PAID)
        self.assertEqual(invoice.balance_amount, Decimal('0.00'))
        self.assertEqual(payment.invoice_id, self.invoice.id)
        self.assertEqual(Payment.objects.get().amount, Decimal('500.00'))
        self.assertTrue(AuditLog.objects.filter(action='invoice_status').exists())
        self.assertTrue(AuditLog.objects.filter(action='payment_add').exists())

    def test_missing_invoice(self):
        with self.assertRaises(InvoiceNotFound):
            transition_invoice_status(999999, 'PAID')

    def test_invalid_status_touches_nothing(self):
        with self.assertRaises(InvalidStatus):
            transition_invoice_status(self.invoice.id, 'ARCHIVED')
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_SENT)

    def test_payment_failure_rolls_back_status(self):
        with patch.object(Payment.objects, 'create', side_effect=DatabaseError('disk full')):
            with self.assertLogs('webill.invoices', level='ERROR'):
                with self.assertRaises(PersistenceFailure):
                    transition_invoice_status(self.invoice.id, 'PAID', {'amount': Decimal('500.00'), 'method': 'UPI'})

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_SENT)
        self.assertEqual(self.invoice.paid_amount, Decimal('0.00'))
        self.assertEqual(self.invoice.balance_amount, Decimal('500.00'))
        self.assertFalse(Payment.objects.exists())

    def test_status_analytics(self):
        now = self.invoice.due_date + timedelta(days=2, hours=1)
        analytics = status_analytics(self.invoice, now=now)
        self.assertEqual(analytics['days_past_due'], 3)
        self.assertEqual(analytics['days_until_due'], 0)
        self.assertTrue(analytics['is_overdue'])
        self.assertEqual(analytics['payment_progress'], Decimal('0.00'))

    def test_mark_overdue_invoices(self):
        past = TestDataFactory.create_invoice(
            status=Invoice.STATUS_SENT, issue_date=timezone.now() - timedelta(days=40)
        )
        count = mark_overdue_invoices()
        self.assertEqual(count, 1)
        past.refresh_from_db()
        self.assertEqual(past.status, Invoice.STATUS_OVERDUE)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_SENT)


class InvoiceAPITests(TestCase):
    """Test invoice endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(state='Karnataka', address='12 MG Road, Bengaluru')
        self.item = TestDataFactory.create_item(unit_price=Decimal('250.00'), gst_rate=Decimal('12.00'))

    def _create(self, **extra):
        body = {
            'customer': self.customer.id,
            'items': [{'item': self.item.id, 'quantity': 2, 'description': 'Onsite visit'}],
        }
        body.update(extra)
        return self.client.post('/api/v1/invoices/', body, format='json')

    def test_create_invoice(self):
        response = self._create(payment_terms_days=15)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data
        self.assertTrue(data['invoice_number'].startswith('INV-'))
        self.assertEqual(data['status'], 'DRAFT')
        self.assertEqual(data['subtotal'], '500.00')
        self.assertEqual(data['tax_amount'], '60.00')
        self.assertEqual(data['total_amount'], '560.00')
        self.assertEqual(data['balance_amount'], '560.00')
        self.assertEqual(data['payment_terms'], 'Net 15')
        self.assertEqual(data['place_of_supply'], 'Karnataka')
        self.assertEqual(data['currency'], 'INR')
        self.assertEqual(data['items'][0]['cgst_amount'], '30.00')
        self.assertEqual(data['items'][0]['description'], 'Onsite visit')

        invoice = Invoice.objects.get(id=data['id'])
        self.assertEqual(invoice.due_date - invoice.issue_date, timedelta(days=15))

    def test_create_inter_state_invoice(self):
        response = self._create(place_of_supply='Kerala')
        self.assertEqual(response.data['items'][0]['igst_amount'], '60.00')
        self.assertEqual(response.data['items'][0]['cgst_amount'], '0.00')

    def test_create_as_sent(self):
        response = self._create(status='SENT')
        self.assertEqual(response.data['status'], 'SENT')
        self.assertIsNotNone(response.data['sent_date'])

    def test_cannot_create_as_paid(self):
        response = self._create(status='PAID')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_recomputes_totals(self):
        invoice_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/invoices/{invoice_id}/', {
            'items': [{'item': self.item.id, 'quantity': 4}],
            'payment_terms_days': 45,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '1120.00')
        invoice = Invoice.objects.get(id=invoice_id)
        self.assertEqual(invoice.due_date - invoice.issue_date, timedelta(days=45))

    def test_update_rejects_status(self):
        invoice_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/invoices/{invoice_id}/', {'status': 'SENT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data)

    def test_settled_invoices_cannot_be_edited(self):
        for settled in (Invoice.STATUS_PAID, Invoice.STATUS_CANCELLED):
            invoice = TestDataFactory.create_invoice(
                customer=self.customer, total_amount=Decimal('560.00'), status=settled
            )
            TestDataFactory.create_invoice_item(invoice, self.item, quantity=2, unit_price=Decimal('250.00'))
            response = self.client.patch(f'/api/v1/invoices/{invoice.id}/', {
                'items': [{'item': self.item.id, 'quantity': 10}],
            }, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['error_kind'], 'ConstraintViolation')

            invoice.refresh_from_db()
            self.assertEqual(invoice.total_amount, Decimal('560.00'))
            self.assertEqual(invoice.items.get().quantity, 2)

    def test_delete_only_drafts(self):
        draft = TestDataFactory.create_invoice(customer=self.customer)
        sent = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)

        response = self.client.delete(f'/api/v1/invoices/{sent.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'ConstraintViolation')

        response = self.client.delete(f'/api/v1/invoices/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_status_paid_records_payment(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        response = self.client.put(f'/api/v1/invoices/{invoice.id}/status/', {
            'status': 'PAID', 'payment_amount': '500.00', 'payment_method': 'CASH',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'PAID')
        self.assertEqual(response.data['balance_amount'], '0.00')
        self.assertEqual(len(response.data['payments']), 1)
        self.assertEqual(response.data['payments'][0]['amount'], '500.00')
        self.assertEqual(response.data['payments'][0]['notes'], f'Payment for invoice {invoice.invoice_number}')

    def test_status_paid_without_payment(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer)
        response = self.client.post(f'/api/v1/invoices/{invoice.id}/status/', {'status': 'PAID'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payments'], [])

    def test_status_overdue_before_due_date(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        response = self.client.put(f'/api/v1/invoices/{invoice.id}/status/', {'status': 'OVERDUE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'SENT')

    def test_status_invalid(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer)
        response = self.client.put(f'/api/v1/invoices/{invoice.id}/status/', {'status': 'BOGUS'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')

    def test_status_missing_invoice(self):
        response = self.client.put('/api/v1/invoices/999999/status/', {'status': 'PAID'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error_kind'], 'NotFound')

    def test_status_unknown_field(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer)
        response = self.client.put(f'/api/v1/invoices/{invoice.id}/status/', {
            'status': 'PAID', 'paid_by': 'someone',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('paid_by', response.data)

    def test_status_get_includes_analytics(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        response = self.client.get(f'/api/v1/invoices/{invoice.id}/status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['analytics']['current_status'], 'SENT')
        self.assertFalse(response.data['analytics']['is_overdue'])
        self.assertEqual(response.data['payment_history'], [])

    def test_list_filters(self):
        TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_PAID)
        TestDataFactory.create_invoice(status=Invoice.STATUS_DRAFT)

        response = self.client.get('/api/v1/invoices/', {'status': 'sent,paid'})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/invoices/', {'customer': self.customer.id, 'status': 'PAID'})
        self.assertEqual(response.data['count'], 1)


class InvoiceFromTransactionTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.customer = TestDataFactory.create_customer()
        self.item = TestDataFactory.create_item(unit_price=Decimal('100.00'))
        self.sale = create_transaction({
            'type': Transaction.TYPE_SALE,
            'customer': self.customer,
            'items': [{'item': self.item, 'quantity': 3}],
        })

    def test_creates_draft_with_copied_lines(self):
        response = self.client.post('/api/v1/invoices/from-transaction/', {'transaction': self.sale.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'DRAFT')
        self.assertEqual(response.data['total_amount'], '354.00')
        self.assertEqual(response.data['transaction'], self.sale.id)
        self.assertEqual(response.data['payment_terms'], 'Net 30')
        self.assertEqual(response.data['notes'], f'Invoice generated from transaction {self.sale.transaction_number}')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['quantity'], 3)

    def test_duplicate_is_a_conflict(self):
        first = self.client.post('/api/v1/invoices/from-transaction/', {'transaction': self.sale.id}, format='json')
        second = self.client.post('/api/v1/invoices/from-transaction/', {'transaction': self.sale.id}, format='json')
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data['invoice_id'], first.data['id'])

    def test_missing_transaction(self):
        response = self.client.post('/api/v1/invoices/from-transaction/', {'transaction': 999999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_only_sales(self):
        expense = create_transaction({'type': Transaction.TYPE_EXPENSE, 'amount': Decimal('100.00')})
        response = self.client.post('/api/v1/invoices/from-transaction/', {'transaction': expense.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')


class InvoiceReminderTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.customer = TestDataFactory.create_customer(name='Kaveri Foods', email='ap@kaveri.example')

    def remind(self, invoice, body=None):
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.post(f'/api/v1/invoices/{invoice.id}/reminder/', body or {}, format='json')

    def test_reminder_marks_past_due_invoice_overdue(self):
        invoice = TestDataFactory.create_invoice(
            customer=self.customer, status=Invoice.STATUS_SENT, issue_date=timezone.now() - timedelta(days=45)
        )
        response = self.remind(invoice)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reminder']['reminder_count'], 1)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['ap@kaveri.example'])
        self.assertIn('Overdue Payment Reminder', mail.outbox[0].subject)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_OVERDUE)
        self.assertEqual(invoice.reminders_sent, 1)
        self.assertIsNotNone(invoice.last_reminder_date)

    def test_custom_message(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        self.remind(invoice, {'reminder_type': 'payment', 'custom_message': 'Please pay soon.'})
        self.assertEqual(mail.outbox[0].body, 'Please pay soon.')
        self.assertEqual(mail.outbox[0].subject, f'Payment Reminder - Invoice {invoice.invoice_number}')

    def test_sign_off_uses_business_name_setting(self):
        Setting.objects.create(key='business_name', value='Kaveri Wholesale')
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        self.remind(invoice)
        self.assertTrue(mail.outbox[0].body.endswith('Best regards,\nKaveri Wholesale'))

    def test_no_reminder_for_paid_invoice(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_PAID)
        response = self.remind(invoice)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(mail.outbox), 0)

    def test_mail_waits_for_commit(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        with self.captureOnCommitCallbacks() as callbacks:
            send_reminder(invoice)
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(len(mail.outbox), 0)
        callbacks[0]()
        self.assertEqual(len(mail.outbox), 1)

    def test_no_mail_when_recording_fails(self):
        invoice = TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with patch.object(Invoice, 'save', side_effect=DatabaseError('disk full')):
                with self.assertRaises(DatabaseError):
                    send_reminder(invoice)
        self.assertEqual(callbacks, [])
        self.assertEqual(len(mail.outbox), 0)
        invoice.refresh_from_db()
        self.assertEqual(invoice.reminders_sent, 0)

    def test_customer_needs_email(self):
        customer = TestDataFactory.create_customer(email='')
        invoice = TestDataFactory.create_invoice(customer=customer, status=Invoice.STATUS_SENT)
        response = self.client.post(f'/api/v1/invoices/{invoice.id}/reminder/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')

    def test_reminder_stats(self):
        invoice = TestDataFactory.create_invoice(
            customer=self.customer, status=Invoice.STATUS_SENT, issue_date=timezone.now() - timedelta(days=70)
        )
        response = self.client.get(f'/api/v1/invoices/{invoice.id}/reminder/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['reminder_stats']['is_overdue'])
        self.assertEqual(response.data['reminder_stats']['suggested_reminder_type'], 'final_notice')


class MarkOverdueCommandTests(TestCase):
    def setUp(self):
        self.overdue = TestDataFactory.create_invoice(
            status=Invoice.STATUS_SENT, issue_date=timezone.now() - timedelta(days=31)
        )

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command('mark_overdue_invoices', '--dry-run', stdout=out)
        self.assertIn('DRY RUN', out.getvalue())
        self.assertIn(self.overdue.invoice_number, out.getvalue())
        self.overdue.refresh_from_db()
        self.assertEqual(self.overdue.status, Invoice.STATUS_SENT)

    def test_marks_overdue(self):
        out = StringIO()
        call_command('mark_overdue_invoices', stdout=out)
        self.assertIn('Marked 1 invoice(s)', out.getvalue())
        self.overdue.refresh_from_db()
        self.assertEqual(self.overdue.status, Invoice.STATUS_OVERDUE)


class InvoiceAnalyticsTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.customer = TestDataFactory.create_customer()
        TestDataFactory.create_invoice(customer=self.customer, total_amount=Decimal('1000.00'), status=Invoice.STATUS_SENT)
        paid = TestDataFactory.create_invoice(customer=self.customer, total_amount=Decimal('500.00'), status=Invoice.STATUS_SENT)
        transition_invoice_status(paid.id, 'PAID', {'amount': Decimal('500.00'), 'method': 'CARD'})

    def test_analytics(self):
        data = invoice_analytics()
        self.assertEqual(data['total_invoices'], 2)
        self.assertEqual(data['total_revenue'], Decimal('1500.00'))
        self.assertEqual(data['paid_revenue'], Decimal('500.00'))
        self.assertEqual(data['outstanding_revenue'], Decimal('1000.00'))
        self.assertEqual(data['by_status']['PAID']['count'], 1)
        self.assertEqual(data['payments']['count'], 1)
        self.assertEqual(data['top_customers'][0]['invoice_count'], 2)

    def test_analytics_endpoint(self):
        response = self.client.get('/api/v1/invoices/analytics/', {'period': 7})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period_days'], 7)
        self.assertEqual(response.data['total_invoices'], 2)

    def test_analytics_customer_filter(self):
        other = TestDataFactory.create_customer()
        TestDataFactory.create_invoice(customer=other, total_amount=Decimal('250.00'), status=Invoice.STATUS_SENT)

        response = self.client.get('/api/v1/invoices/analytics/', {'customer': other.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_invoices'], 1)

        response = self.client.get('/api/v1/invoices/analytics/', {'customer': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')

    def test_payments_endpoint(self):
        invoice = Invoice.objects.get(status=Invoice.STATUS_PAID)
        response = self.client.get(f'/api/v1/invoices/{invoice.id}/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['payment_method'], 'CARD')
