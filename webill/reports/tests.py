"""
Test suite for the reports module
Tests: dashboard stats, sales and GST summaries, POS analytics, receivables aging,
credit analysis, inventory valuation, low stock and profit and loss
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from webill.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from webill.invoices.models import Invoice
from webill.invoices.services import create_invoice
from webill.transactions.models import Transaction
from webill.transactions.services import create_transaction


class ReportsTestCase(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.customer = TestDataFactory.create_customer(name='Local Customer', state='Karnataka')
        self.remote_customer = TestDataFactory.create_customer(name='Remote Customer', state='Gujarat')
        self.supplier = TestDataFactory.create_supplier(state='Karnataka')
        self.item = TestDataFactory.create_item(name='Kettle', unit_price=Decimal('1000.00'), gst_rate=Decimal('18.00'))

    def sale(self, customer, quantity=1, **extra):
        data = {
            'type': Transaction.TYPE_SALE,
            'customer': customer,
            'items': [{'item': self.item, 'quantity': quantity}],
        }
        data.update(extra)
        return create_transaction(data)


class DashboardTests(ReportsTestCase):
    def test_dashboard_stats(self):
        self.sale(self.customer, payment_status=Transaction.STATUS_COMPLETED, payment_method='CASH')
        self.sale(self.customer)
        create_transaction({'type': Transaction.TYPE_INCOME, 'amount': Decimal('200.00'),
                            'payment_status': Transaction.STATUS_COMPLETED})
        create_transaction({'type': Transaction.TYPE_EXPENSE, 'amount': Decimal('300.00'),
                            'payment_status': Transaction.STATUS_COMPLETED})
        TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT)
        TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_PAID)

        response = self.client.get('/api/v1/reports/dashboard-stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_revenue'], Decimal('1380.00'))
        self.assertEqual(response.data['active_customers'], 2)
        self.assertEqual(response.data['sales_this_month'], 2)
        self.assertEqual(response.data['pending_invoices'], 1)

    def test_recent_transactions(self):
        for _ in range(7):
            self.sale(self.customer)
        response = self.client.get('/api/v1/reports/recent-transactions/')
        self.assertEqual(len(response.data), 5)


class SalesSummaryTests(ReportsTestCase):
    def test_summary(self):
        self.sale(self.customer, quantity=2)
        self.sale(self.customer, quantity=1, payment_status=Transaction.STATUS_REFUNDED)

        response = self.client.get('/api/v1/reports/sales-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_sales'], Decimal('2360.00'))
        self.assertEqual(summary['total_tax'], Decimal('360.00'))
        self.assertEqual(summary['total_transactions'], 1)
        self.assertEqual(summary['total_items_sold'], 2)
        self.assertEqual(len(response.data['daily_breakdown']), 1)

    def test_invalid_dates(self):
        response = self.client.get('/api/v1/reports/sales-summary/', {'date_from': '01-02-2025'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')

        response = self.client.get('/api/v1/reports/sales-summary/', {'date_from': '2025-03-01', 'date_to': '2025-02-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TaxSummaryTests(ReportsTestCase):
    def test_output_input_and_net_liability(self):
        self.sale(self.customer)          # CGST 90 + SGST 90
        self.sale(self.remote_customer)   # IGST 180
        create_transaction({
            'type': Transaction.TYPE_PURCHASE,
            'supplier': self.supplier,
            'items': [{'item': self.item, 'quantity': 1, 'unit_price': Decimal('500.00')}],
        })                                # CGST 45 + SGST 45

        response = self.client.get('/api/v1/reports/tax-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        output = response.data['output_tax']['totals']
        self.assertEqual(output['cgst_amount'], Decimal('90.00'))
        self.assertEqual(output['sgst_amount'], Decimal('90.00'))
        self.assertEqual(output['igst_amount'], Decimal('180.00'))
        self.assertEqual(output['taxable_amount'], Decimal('2000.00'))

        self.assertEqual(response.data['input_tax']['totals']['total_gst_amount'], Decimal('90.00'))
        net = response.data['net_liability']
        self.assertEqual(net['cgst'], Decimal('45.00'))
        self.assertEqual(net['igst'], Decimal('180.00'))
        self.assertEqual(net['total'], Decimal('270.00'))

    def test_invoices_count_once(self):
        sale = self.sale(self.customer)
        # Raised from the sale: already counted through the sale lines
        TestDataFactory.create_invoice(customer=self.customer, status=Invoice.STATUS_SENT, transaction=sale)
        # Standalone invoices count unless they are drafts
        create_invoice({'customer': self.customer, 'status': Invoice.STATUS_SENT,
                        'items': [{'item': self.item, 'quantity': 1}]})
        create_invoice({'customer': self.customer, 'items': [{'item': self.item, 'quantity': 5}]})

        response = self.client.get('/api/v1/reports/tax-summary/')
        self.assertEqual(response.data['output_tax']['totals']['total_gst_amount'], Decimal('360.00'))
        self.assertEqual(len(response.data['output_tax']['invoices_by_rate']), 1)


class POSAnalyticsTests(ReportsTestCase):
    def test_today(self):
        self.sale(self.customer, quantity=2, payment_status=Transaction.STATUS_COMPLETED, payment_method='UPI')
        self.sale(self.customer, quantity=1, payment_status=Transaction.STATUS_COMPLETED, payment_method='CASH')
        self.sale(self.customer, quantity=4)

        response = self.client.get('/api/v1/reports/pos-analytics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_transactions'], 2)
        self.assertEqual(summary['total_sales'], Decimal('3540.00'))
        self.assertEqual(summary['total_items'], 3)

        methods = {row['method']: row for row in response.data['payment_methods']}
        self.assertEqual(methods['UPI']['amount'], Decimal('2360.00'))
        self.assertEqual(methods['CASH']['count'], 1)

        top = response.data['top_items'][0]
        self.assertEqual(top['name'], 'Kettle')
        self.assertEqual(top['quantity'], 3)
        self.assertEqual(top['transactions'], 2)

        self.assertEqual(len(response.data['hourly_trend']), 24)
        self.assertEqual(sum(bucket['transactions'] for bucket in response.data['hourly_trend']), 2)

    def test_other_day_is_empty(self):
        self.sale(self.customer, payment_status=Transaction.STATUS_COMPLETED, payment_method='CASH')
        response = self.client.get('/api/v1/reports/pos-analytics/', {'date': '2001-01-01'})
        self.assertEqual(response.data['summary']['total_transactions'], 0)
        self.assertEqual(response.data['payment_methods'], [])

    def test_invalid_date(self):
        response = self.client.get('/api/v1/reports/pos-analytics/', {'date': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PartyAgingTests(ReportsTestCase):
    def open_invoice(self, customer, amount, days_past_due, status=Invoice.STATUS_OVERDUE):
        return TestDataFactory.create_invoice(
            customer=customer, total_amount=Decimal(amount), status=status,
            due_date=timezone.now() - timedelta(days=days_past_due),
        )

    def test_buckets(self):
        self.open_invoice(self.customer, '500.00', -5, status=Invoice.STATUS_SENT)
        self.open_invoice(self.customer, '300.00', 10)
        self.open_invoice(self.customer, '200.00', 45)
        self.open_invoice(self.customer, '100.00', 100)
        self.open_invoice(self.remote_customer, '400.00', 70, status=Invoice.STATUS_SENT)
        # Settled, cancelled and draft invoices are not receivables
        self.open_invoice(self.customer, '999.00', 10, status=Invoice.STATUS_PAID)
        self.open_invoice(self.customer, '999.00', 10, status=Invoice.STATUS_CANCELLED)
        self.open_invoice(self.customer, '999.00', 10, status=Invoice.STATUS_DRAFT)

        response = self.client.get('/api/v1/reports/party-aging/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        parties = response.data['parties']
        self.assertEqual([row['customer_name'] for row in parties], ['Local Customer', 'Remote Customer'])

        local = parties[0]
        self.assertEqual(local['invoice_count'], 4)
        self.assertEqual(local['current'], Decimal('500.00'))
        self.assertEqual(local['days_1_30'], Decimal('300.00'))
        self.assertEqual(local['days_31_60'], Decimal('200.00'))
        self.assertEqual(local['days_61_90'], Decimal('0.00'))
        self.assertEqual(local['days_over_90'], Decimal('100.00'))
        self.assertEqual(local['total'], Decimal('1100.00'))
        self.assertEqual(parties[1]['days_61_90'], Decimal('400.00'))

        totals = response.data['summary']['totals']
        self.assertEqual(totals['total'], Decimal('1500.00'))
        self.assertEqual(totals['days_61_90'], Decimal('400.00'))

    def test_partly_paid_invoice_ages_its_balance(self):
        TestDataFactory.create_invoice(
            customer=self.customer, total_amount=Decimal('1000.00'), paid_amount=Decimal('600.00'),
            status=Invoice.STATUS_OVERDUE, due_date=timezone.now() - timedelta(days=15),
        )
        response = self.client.get('/api/v1/reports/party-aging/')
        self.assertEqual(response.data['parties'][0]['days_1_30'], Decimal('400.00'))

    def test_invalid_as_of(self):
        response = self.client.get('/api/v1/reports/party-aging/', {'as_of': 'today'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_kind'], 'InvalidInput')


class CreditAnalysisTests(ReportsTestCase):
    def test_utilization_and_risk(self):
        stretched = TestDataFactory.create_customer(name='Stretched Customer', credit_limit=Decimal('1000.00'))
        TestDataFactory.create_invoice(customer=stretched, total_amount=Decimal('500.00'), status=Invoice.STATUS_SENT)
        TestDataFactory.create_invoice(customer=stretched, total_amount=Decimal('450.00'), status=Invoice.STATUS_OVERDUE)
        TestDataFactory.create_invoice(customer=stretched, total_amount=Decimal('700.00'), status=Invoice.STATUS_PAID)
        late = TestDataFactory.create_customer(name='Late Customer', credit_limit=Decimal('1000.00'))
        TestDataFactory.create_invoice(customer=late, total_amount=Decimal('100.00'), status=Invoice.STATUS_OVERDUE)
        TestDataFactory.create_customer(name='Trusted Customer', credit_limit=Decimal('2000.00'))

        response = self.client.get('/api/v1/reports/credit-analysis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        # Customers without a credit limit are left out
        rows = {row['customer_name']: row for row in response.data['customers']}
        self.assertEqual(set(rows), {'Stretched Customer', 'Late Customer', 'Trusted Customer'})
        self.assertEqual(response.data['customers'][0]['customer_name'], 'Stretched Customer')

        stretched_row = rows['Stretched Customer']
        self.assertEqual(stretched_row['outstanding_amount'], Decimal('950.00'))
        self.assertEqual(stretched_row['outstanding_invoices'], 2)
        self.assertEqual(stretched_row['overdue_amount'], Decimal('450.00'))
        self.assertEqual(stretched_row['available_credit'], Decimal('50.00'))
        self.assertEqual(stretched_row['credit_utilization'], Decimal('95.00'))
        self.assertEqual(stretched_row['credit_risk'], 'HIGH')
        self.assertEqual(stretched_row['recommended_action'], 'SUSPEND_CREDIT')
        self.assertFalse(stretched_row['over_limit'])

        self.assertEqual(rows['Late Customer']['credit_risk'], 'MINIMAL')
        self.assertEqual(rows['Late Customer']['recommended_action'], 'FOLLOW_UP_PAYMENT')
        self.assertEqual(rows['Trusted Customer']['recommended_action'], 'NORMAL')

        summary = response.data['summary']
        self.assertEqual(summary['customers_with_credit'], 3)
        self.assertEqual(summary['total_credit_limit'], Decimal('4000.00'))
        self.assertEqual(summary['total_outstanding'], Decimal('1050.00'))
        self.assertEqual(summary['overall_utilization'], Decimal('26.25'))
        self.assertEqual(summary['risk_distribution']['high'], 1)
        self.assertEqual(summary['risk_distribution']['minimal'], 2)
        self.assertEqual(len(response.data['needs_attention']), 2)

    def test_over_limit(self):
        customer = TestDataFactory.create_customer(name='Over Customer', credit_limit=Decimal('100.00'))
        TestDataFactory.create_invoice(customer=customer, total_amount=Decimal('150.00'), status=Invoice.STATUS_SENT)

        row = self.client.get('/api/v1/reports/credit-analysis/').data['customers'][0]
        self.assertTrue(row['over_limit'])
        self.assertEqual(row['available_credit'], Decimal('0.00'))
        self.assertEqual(row['credit_utilization'], Decimal('150.00'))


class InventoryValuationTests(ReportsTestCase):
    def test_valuation(self):
        kitchen = TestDataFactory.create_category(name='Kitchen')
        TestDataFactory.create_item(name='Mug', unit_price=Decimal('100.00'), cost_price=Decimal('60.00'),
                                    stock_quantity=10, category=kitchen)
        TestDataFactory.create_item(name='Installation', unit_price=Decimal('500.00'), stock_quantity=5, is_service=True)
        TestDataFactory.create_item(name='Retired', unit_price=Decimal('100.00'), stock_quantity=5, is_active=False)

        response = self.client.get('/api/v1/reports/inventory-valuation/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['item_count'], 2)
        self.assertEqual(summary['units'], 60)
        # Kettle has no cost price and is valued at its selling price
        self.assertEqual(summary['cost_value'], Decimal('50600.00'))
        self.assertEqual(summary['retail_value'], Decimal('51000.00'))
        self.assertEqual(summary['potential_profit'], Decimal('400.00'))

        categories = {row['category_name']: row for row in response.data['by_category']}
        self.assertEqual(categories['Kitchen']['cost_value'], Decimal('600.00'))
        self.assertEqual(categories['Kitchen']['retail_value'], Decimal('1000.00'))
        self.assertEqual(categories['Uncategorized']['units'], 50)
        self.assertEqual(response.data['top_items'][0]['name'], 'Kettle')


class LowStockTests(ReportsTestCase):
    def test_low_stock(self):
        TestDataFactory.create_item(name='Empty', stock_quantity=0, min_stock=5)
        TestDataFactory.create_item(name='Scarce', stock_quantity=2, min_stock=10)
        TestDataFactory.create_item(name='Short', stock_quantity=8, min_stock=10)
        TestDataFactory.create_item(name='Repair', stock_quantity=0, min_stock=5, is_service=True)

        response = self.client.get('/api/v1/reports/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        items = response.data['items']
        self.assertEqual([row['name'] for row in items], ['Empty', 'Scarce', 'Short'])
        self.assertEqual([row['status'] for row in items], ['OUT_OF_STOCK', 'CRITICAL', 'LOW'])
        self.assertEqual([row['shortfall'] for row in items], [5, 8, 2])
        self.assertEqual(items[0]['suggested_order_quantity'], 10)
        self.assertEqual(items[1]['suggested_order_quantity'], 20)

        summary = response.data['summary']
        self.assertEqual(summary['total'], 3)
        self.assertEqual(summary['out_of_stock'], 1)
        self.assertEqual(summary['critical'], 1)
        self.assertEqual(summary['low'], 1)


class ProfitLossTests(ReportsTestCase):
    def test_profit_and_loss(self):
        TestDataFactory.create_transaction(type=Transaction.TYPE_SALE, customer=self.customer, total_amount=Decimal('1180.00'))
        TestDataFactory.create_transaction(type=Transaction.TYPE_SALE, customer=self.customer, total_amount=Decimal('500.00'),
                                           payment_status=Transaction.STATUS_REFUNDED)
        TestDataFactory.create_transaction(type=Transaction.TYPE_SALE, customer=self.customer, total_amount=Decimal('800.00'),
                                           date=timezone.now() - timedelta(days=60))
        TestDataFactory.create_transaction(type=Transaction.TYPE_INCOME, total_amount=Decimal('200.00'))
        TestDataFactory.create_transaction(type=Transaction.TYPE_PURCHASE, supplier=self.supplier, total_amount=Decimal('600.00'))
        TestDataFactory.create_transaction(type=Transaction.TYPE_EXPENSE, total_amount=Decimal('300.00'), category='Rent')
        TestDataFactory.create_transaction(type=Transaction.TYPE_EXPENSE, total_amount=Decimal('100.00'), category='Utilities')

        response = self.client.get('/api/v1/reports/profit-loss/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['revenue']['sales'], Decimal('1180.00'))
        self.assertEqual(response.data['revenue']['total'], Decimal('1380.00'))
        self.assertEqual(response.data['cost_of_goods'], Decimal('600.00'))
        self.assertEqual(response.data['gross_profit']['amount'], Decimal('780.00'))
        self.assertEqual(response.data['expenses']['total'], Decimal('400.00'))
        self.assertEqual(response.data['net_profit']['amount'], Decimal('380.00'))
        self.assertEqual(response.data['net_profit']['margin'], Decimal('27.54'))
        self.assertEqual(
            [row['category'] for row in response.data['expenses']['by_category']], ['Rent', 'Utilities']
        )

    def test_empty_period(self):
        response = self.client.get('/api/v1/reports/profit-loss/', {'date_from': '2001-01-01', 'date_to': '2001-01-31'})
        self.assertEqual(response.data['net_profit']['amount'], Decimal('0.00'))
        self.assertEqual(response.data['gross_profit']['margin'], Decimal('0.00'))
