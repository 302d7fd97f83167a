"""
Test suite for the parties module
Tests: CRUD, GSTIN validation, filtering, recent activity and delete guards
"""
from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework import status

from webill.core.models import AuditLog
from webill.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from webill.parties.models import Party
from webill.transactions.models import Transaction


class PartyAPITests(TestCase):
    """Test party endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_customer(self):
        """Test creating a customer with a GSTIN"""
        response = self.client.post('/api/v1/parties/', {
            'type': 'CUSTOMER',
            'name': 'Asha Traders',
            'email': 'accounts@asha.example',
            'state': 'Karnataka',
            'tax_number': '29abcde1234f1z5',
            'payment_terms': 15,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['tax_number'], '29ABCDE1234F1Z5')
        self.assertEqual(response.data['country'], 'India')
        party = Party.objects.get(id=response.data['id'])
        self.assertEqual(party.payment_terms, 15)
        self.assertTrue(AuditLog.objects.filter(model_name='Party', action='create', object_id=str(party.id)).exists())

    def test_invalid_gstin_rejected(self):
        response = self.client.post('/api/v1/parties/', {
            'name': 'Bad GSTIN', 'tax_number': '12345',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tax_number', response.data)

    def test_negative_credit_limit_rejected(self):
        response = self.client.post('/api/v1/parties/', {
            'name': 'Overdrawn', 'credit_limit': '-1.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('credit_limit', response.data)

    @override_settings(WEBILL_DEFAULT_COUNTRY='Nepal')
    def test_country_defaults_to_configured_country(self):
        response = self.client.post('/api/v1/parties/', {'name': 'Kathmandu Traders'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['country'], 'Nepal')

    def test_list_filters_by_type(self):
        """Test the type filter and the list envelope"""
        TestDataFactory.create_customer(name='Customer One')
        TestDataFactory.create_customer(name='Customer Two')
        TestDataFactory.create_supplier(name='Supplier One')

        response = self.client.get('/api/v1/parties/', {'type': 'supplier'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Supplier One')

        response = self.client.get('/api/v1/parties/', {'type': 'CUSTOMER', 'limit': 1})
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)
        self.assertIsNone(response.data['previous'])

    def test_search(self):
        TestDataFactory.create_customer(name='Meera Stores', phone='9800011111')
        TestDataFactory.create_customer(name='Ravi Agencies')

        response = self.client.get('/api/v1/parties/', {'search': 'meera'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/parties/', {'search': '98000'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Meera Stores')

    def test_is_active_filter(self):
        TestDataFactory.create_customer(name='Active')
        TestDataFactory.create_customer(name='Dormant', is_active=False)
        response = self.client.get('/api/v1/parties/', {'is_active': 'false'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Dormant')

    def test_detail_includes_recent_activity(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_transaction(customer=customer, total_amount=Decimal('118.00'))
        TestDataFactory.create_invoice(customer=customer)

        response = self.client.get(f'/api/v1/parties/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['recent_sales']), 1)
        self.assertEqual(response.data['recent_purchases'], [])
        self.assertEqual(len(response.data['recent_invoices']), 1)

    def test_partial_update(self):
        customer = TestDataFactory.create_customer(name='Old Name')
        response = self.client.patch(f'/api/v1/parties/{customer.id}/', {'name': 'New Name'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.name, 'New Name')
        log = AuditLog.objects.get(model_name='Party', action='update')
        self.assertEqual(log.changes, {'fields': ['name']})

    def test_delete(self):
        """Deleting a party keeps its transactions but detaches them"""
        customer = TestDataFactory.create_customer()
        txn = TestDataFactory.create_transaction(customer=customer)

        response = self.client.delete(f'/api/v1/parties/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Party.objects.filter(id=customer.id).exists())
        self.assertIsNone(Transaction.objects.get(id=txn.id).customer)

    def test_delete_blocked_by_invoices(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_invoice(customer=customer)

        response = self.client.delete(f'/api/v1/parties/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'ConstraintViolation')
        self.assertTrue(Party.objects.filter(id=customer.id).exists())

    def test_missing_party(self):
        response = self.client.get('/api/v1/parties/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
