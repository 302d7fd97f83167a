"""
Test suite for the transactions module
Tests: GST line pricing, stock movement, payment recording and validation
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from webill.core.exceptions import InvalidInput
from webill.core.models import AuditLog
from webill.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from webill.invoices.models import Payment
from webill.transactions.models import Transaction
from webill.transactions.services import create_transaction, supply_is_inter_state


class TransactionServiceTests(TestCase):
    """Test the transaction write service directly"""

    def setUp(self):
        self.customer = TestDataFactory.create_customer(state='Karnataka')
        self.item = TestDataFactory.create_item(unit_price=Decimal('500.00'), gst_rate=Decimal('18.00'), stock_quantity=10)

    def test_supply_is_inter_state(self):
        self.assertFalse(supply_is_inter_state(self.customer))
        self.assertFalse(supply_is_inter_state(None))
        self.assertFalse(supply_is_inter_state(TestDataFactory.create_customer(state='')))
        self.assertTrue(supply_is_inter_state(TestDataFactory.create_customer(state='Tamil Nadu')))

    def test_sale_totals_and_stock(self):
        txn = create_transaction({
            'type': Transaction.TYPE_SALE,
            'customer': self.customer,
            'items': [{'item': self.item, 'quantity': 2}],
        })
        self.assertEqual(txn.subtotal, Decimal('1000.00'))
        self.assertEqual(txn.tax_amount, Decimal('180.00'))
        self.assertEqual(txn.total_amount, Decimal('1180.00'))

        line = txn.items.get()
        self.assertEqual(line.cgst_amount, Decimal('90.00'))
        self.assertEqual(line.sgst_amount, Decimal('90.00'))
        self.assertEqual(line.igst_amount, Decimal('0.00'))

        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 8)

    def test_inter_state_sale_uses_igst(self):
        customer = TestDataFactory.create_customer(state='Maharashtra')
        txn = create_transaction({
            'type': Transaction.TYPE_SALE,
            'customer': customer,
            'items': [{'item': self.item, 'quantity': 1}],
        })
        line = txn.items.get()
        self.assertEqual(line.cgst_amount, Decimal('0.00'))
        self.assertEqual(line.igst_amount, Decimal('90.00'))
        self.assertEqual(txn.total_amount, Decimal('590.00'))

    def test_document_discount_comes_off_after_tax(self):
        txn = create_transaction({
            'type': Transaction.TYPE_SALE,
            'customer': self.customer,
            'discount_amount': Decimal('90.00'),
            'items': [{'item': self.item, 'quantity': 1}],
        })
        self.assertEqual(txn.total_amount, Decimal('500.00'))

    def test_services_do_not_move_stock(self):
        service = TestDataFactory.create_item(is_service=True, stock_quantity=0)
        create_transaction({
            'type': Transaction.TYPE_SALE,
            'customer': self.customer,
            'items': [{'item': service, 'quantity': 3}],
        })
        service.refresh_from_db()
        self.assertEqual(service.stock_quantity, 0)

    def test_client_aggregate_mismatch_rolls_back(self):
        with self.assertRaises(InvalidInput):
            create_transaction({
                'type': Transaction.TYPE_SALE,
                'customer': self.customer,
                'total_amount': Decimal('1000.00'),
                'items': [{'item': self.item, 'quantity': 1}],
            })
        self.assertFalse(Transaction.objects.exists())
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 10)

    def test_completed_transaction_records_payment(self):
        txn = create_transaction({
            'type': Transaction.TYPE_SALE,
            'customer': self.customer,
            'payment_status': Transaction.STATUS_COMPLETED,
            'payment_method': 'UPI',
            'items': [{'item': self.item, 'quantity': 1}],
        })
        payment = txn.payments.get()
        self.assertEqual(payment.amount, Decimal('590.00'))
        self.assertEqual(payment.payment_method, 'UPI')
        self.assertEqual(payment.status, Payment.STATUS_COMPLETED)
        self.assertTrue(payment.payment_number.startswith('PAY-'))

    def test_pending_transaction_records_no_payment(self):
        create_transaction({
            'type': Transaction.TYPE_SALE,
            'customer': self.customer,
            'payment_method': 'CASH',
            'items': [{'item': self.item, 'quantity': 1}],
        })
        self.assertFalse(Payment.objects.exists())


class TransactionAPITests(TestCase):
    """Test transaction endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer()
        self.supplier = TestDataFactory.create_supplier()
        self.item = TestDataFactory.create_item(unit_price=Decimal('100.00'), gst_rate=Decimal('5.00'), stock_quantity=20)

    def _sale(self, quantity=2, **extra):
        body = {
            'type': 'SALE',
            'customer': self.customer.id,
            'items': [{'item': self.item.id, 'quantity': quantity}],
        }
        body.update(extra)
        return self.client.post('/api/v1/transactions/', body, format='json')

    def test_create_sale(self):
        response = self._sale()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['transaction_number'].startswith('SAL-'))
        self.assertEqual(response.data['total_amount'], '210.00')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['tax_amount'], '10.00')
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 18)
        self.assertTrue(AuditLog.objects.filter(model_name='Transaction', action='create').exists())

    def test_purchase_increments_stock(self):
        response = self.client.post('/api/v1/transactions/', {
            'type': 'PURCHASE',
            'supplier': self.supplier.id,
            'items': [{'item': self.item.id, 'quantity': 5, 'unit_price': '80.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subtotal'], '400.00')
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 25)

    def test_matching_client_totals_are_accepted(self):
        response = self._sale(subtotal='200.00', tax_amount='10.00', total_amount='210.00')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_mismatched_client_total_rejected(self):
        response = self._sale(total_amount='999.00')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')
        self.assertEqual(response.data['expected'], '210.00')

    def test_sale_requires_items(self):
        response = self.client.post('/api/v1/transactions/', {'type': 'SALE', 'customer': self.customer.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_supplier_cannot_be_sale_customer(self):
        response = self.client.post('/api/v1/transactions/', {
            'type': 'SALE',
            'customer': self.supplier.id,
            'items': [{'item': self.item.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer', response.data)

    def test_unknown_line_field_rejected(self):
        response = self.client.post('/api/v1/transactions/', {
            'type': 'SALE',
            'customer': self.customer.id,
            'items': [{'item': self.item.id, 'quantity': 1, 'colour': 'red'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_expense(self):
        response = self.client.post('/api/v1/transactions/', {
            'type': 'EXPENSE',
            'amount': '1500.00',
            'category': 'Rent',
            'payment_status': 'COMPLETED',
            'payment_method': 'BANK_TRANSFER',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '1500.00')
        self.assertEqual(response.data['tax_amount'], '0.00')
        self.assertEqual(len(response.data['payments']), 1)

    def test_expense_requires_positive_amount(self):
        response = self.client.post('/api/v1/transactions/', {'type': 'EXPENSE', 'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_lines_and_stock(self):
        txn_id = self._sale(quantity=2).data['id']
        response = self.client.patch(f'/api/v1/transactions/{txn_id}/', {
            'items': [{'item': self.item.id, 'quantity': 5}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '525.00')
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 15)

    def test_update_reprices_when_party_changes_state(self):
        txn_id = self._sale(quantity=1).data['id']
        other = TestDataFactory.create_customer(state='Goa')
        response = self.client.patch(f'/api/v1/transactions/{txn_id}/', {'customer': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['igst_amount'], '5.00')
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 19)

    def test_completing_records_payment_once(self):
        txn_id = self._sale(quantity=1).data['id']
        body = {'payment_status': 'COMPLETED', 'payment_method': 'CASH'}
        self.client.patch(f'/api/v1/transactions/{txn_id}/', body, format='json')
        self.client.patch(f'/api/v1/transactions/{txn_id}/', body, format='json')
        self.assertEqual(Payment.objects.filter(transaction_id=txn_id).count(), 1)

    def test_type_cannot_change(self):
        txn_id = self._sale().data['id']
        response = self.client.patch(f'/api/v1/transactions/{txn_id}/', {'type': 'PURCHASE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_reverts_stock_and_keeps_payments(self):
        response = self._sale(quantity=3, payment_status='COMPLETED', payment_method='CARD')
        txn_id = response.data['id']
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 17)

        response = self.client.delete(f'/api/v1/transactions/{txn_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 20)
        self.assertEqual(Payment.objects.filter(transaction__isnull=True).count(), 1)

    def test_list_filters(self):
        self._sale()
        self.client.post('/api/v1/transactions/', {'type': 'INCOME', 'amount': '50'}, format='json')
        self.client.post('/api/v1/transactions/', {'type': 'EXPENSE', 'amount': '75'}, format='json')

        response = self.client.get('/api/v1/transactions/', {'type': 'sale,income'})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/transactions/', {'customer': self.customer.id})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['customer_name'], self.customer.name)
