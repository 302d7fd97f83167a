"""
Test suite for the catalog module
Tests: category tree rules, item validation, filters and delete guards
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from webill.catalog.models import Category, Item
from webill.core.test_utils import AuthenticatedAPIClient, TestDataFactory


class CategoryModelTests(TestCase):
    def test_ancestors(self):
        root = TestDataFactory.create_category('Electronics')
        child = TestDataFactory.create_category('Phones', parent=root)
        leaf = TestDataFactory.create_category('Feature Phones', parent=child)
        self.assertEqual([c.name for c in leaf.ancestors()], ['Phones', 'Electronics'])
        self.assertEqual(list(root.ancestors()), [])


class CategoryAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.root = TestDataFactory.create_category('Electronics')
        self.child = TestDataFactory.create_category('Phones', parent=self.root)

    def test_create_and_counts(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Laptops', 'parent': self.root.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['parent_name'], 'Electronics')

        response = self.client.get(f'/api/v1/categories/{self.root.id}/')
        self.assertEqual(response.data['children_count'], 2)
        self.assertEqual(len(response.data['children']), 2)

    def test_root_filter(self):
        response = self.client.get('/api/v1/categories/', {'parent': 'root'})
        self.assertEqual([c['name'] for c in response.data], ['Electronics'])

    def test_cannot_parent_itself(self):
        response = self.client.patch(f'/api/v1/categories/{self.root.id}/', {'parent': self.root.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('parent', response.data)

    def test_cannot_move_under_descendant(self):
        response = self.client.patch(f'/api/v1/categories/{self.root.id}/', {'parent': self.child.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.root.refresh_from_db()
        self.assertIsNone(self.root.parent)

    def test_delete_blocked_by_children(self):
        response = self.client.delete(f'/api/v1/categories/{self.root.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'ConstraintViolation')

    def test_delete_blocked_by_items(self):
        TestDataFactory.create_item(category=self.child)
        response = self.client.delete(f'/api/v1/categories/{self.child.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_empty_category(self):
        response = self.client.delete(f'/api/v1/categories/{self.child.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Category.objects.filter(id=self.child.id).exists())


class ItemAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())

    def test_create_item(self):
        response = self.client.post('/api/v1/items/', {
            'name': 'USB Cable',
            'sku': 'USB-01',
            'unit_price': '199.00',
            'gst_rate': '18',
            'hsn_code': '8544',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Item.objects.get(sku='USB-01').gst_rate, Decimal('18.00'))

    def test_blank_skus_do_not_collide(self):
        for name in ('Consulting', 'Installation'):
            response = self.client.post('/api/v1/items/', {
                'name': name, 'sku': '', 'unit_price': '1000', 'is_service': True,
            }, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Item.objects.filter(sku__isnull=True).count(), 2)

    def test_gst_rate_must_be_a_known_slab(self):
        response = self.client.post('/api/v1/items/', {
            'name': 'Odd Rate', 'unit_price': '10', 'gst_rate': '15',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('gst_rate', response.data)

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/items/', {'name': 'Refund', 'unit_price': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_low_stock_filter_skips_services(self):
        TestDataFactory.create_item(name='Low', stock_quantity=2, min_stock=5)
        TestDataFactory.create_item(name='Plenty', stock_quantity=50, min_stock=5)
        TestDataFactory.create_item(name='Support', stock_quantity=0, min_stock=5, is_service=True)

        response = self.client.get('/api/v1/items/', {'low_stock': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([i['name'] for i in response.data['results']], ['Low'])
        self.assertTrue(response.data['results'][0]['is_low_stock'])

    def test_search_and_category_filters(self):
        category = TestDataFactory.create_category('Cables')
        TestDataFactory.create_item(name='HDMI Cable', category=category, hsn_code='8544')
        TestDataFactory.create_item(name='Mouse')

        response = self.client.get('/api/v1/items/', {'search': '8544'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/items/', {'category': category.id})
        self.assertEqual(response.data['results'][0]['name'], 'HDMI Cable')

    def test_price_change_is_audited(self):
        from webill.core.models import AuditLog

        item = TestDataFactory.create_item(unit_price=Decimal('100.00'))
        response = self.client.patch(f'/api/v1/items/{item.id}/', {'unit_price': '120.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(model_name='Item', action='update')
        self.assertEqual(log.changes['unit_price'], {'old': '100.00', 'new': '120.00'})

    def test_delete_blocked_when_used(self):
        item = TestDataFactory.create_item()
        invoice = TestDataFactory.create_invoice()
        TestDataFactory.create_invoice_item(invoice, item)

        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Item.objects.filter(id=item.id).exists())

    def test_delete_unused_item(self):
        item = TestDataFactory.create_item()
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
