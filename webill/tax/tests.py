"""
Tests for GST computation, line pricing and the calculator endpoints
"""
from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework import status

from webill.core.exceptions import InvalidInput
from webill.core.test_utils import AuthenticatedAPIClient, TestDataFactory
from webill.tax.gst import (
    GSTBreakdown, compute_gst, compute_line_amounts, get_gst_rates, is_inter_state, quantize_money,
    summarize_lines, to_decimal, validate_gstin, validate_pan,
)


class ComputeGSTTests(TestCase):
    def test_intra_state_splits_evenly(self):
        breakdown = compute_gst(Decimal('1000'), Decimal('18'), False)
        self.assertEqual(breakdown, GSTBreakdown(Decimal('90'), Decimal('90'), Decimal('0'), Decimal('180')))

    def test_inter_state_is_all_igst(self):
        breakdown = compute_gst(Decimal('1000'), Decimal('18'), True)
        self.assertEqual(breakdown.cgst, 0)
        self.assertEqual(breakdown.sgst, 0)
        self.assertEqual(breakdown.igst, Decimal('180'))
        self.assertEqual(breakdown.total, Decimal('180'))

    def test_zero_rate_is_exempt(self):
        for inter_state in (False, True):
            breakdown = compute_gst(Decimal('1000'), Decimal('0'), inter_state)
            self.assertEqual(tuple(breakdown), (0, 0, 0, 0))
            self.assertTrue(breakdown.is_exempt)

    def test_parts_add_up_to_total(self):
        for amount, rate in (('999.99', '5'), ('1', '28'), ('12345.67', '12'), ('0.03', '18')):
            for inter_state in (False, True):
                breakdown = compute_gst(Decimal(amount), Decimal(rate), inter_state)
                self.assertEqual(breakdown.cgst + breakdown.sgst + breakdown.igst, breakdown.total)
                self.assertEqual(breakdown.cgst, breakdown.sgst)

    def test_computation_stays_unrounded(self):
        breakdown = compute_gst(Decimal('0.03'), Decimal('18'), False)
        self.assertEqual(breakdown.total, Decimal('0.0054'))
        self.assertEqual(breakdown.cgst, Decimal('0.0027'))

    def test_rounding_is_half_up(self):
        breakdown = compute_gst(Decimal('0.25'), Decimal('18'), False).rounded()
        # total 0.045 -> 0.05, halves 0.0225 -> 0.02
        self.assertEqual(breakdown.total, Decimal('0.05'))
        self.assertEqual(breakdown.cgst, Decimal('0.02'))
        self.assertEqual(quantize_money(Decimal('2.675')), Decimal('2.68'))
        self.assertEqual(quantize_money(Decimal('2.665')), Decimal('2.67'))

    def test_accepts_strings_and_ints(self):
        self.assertEqual(compute_gst('1000', 18, False).total, Decimal('180'))

    def test_rejects_negative_and_garbage(self):
        with self.assertRaises(InvalidInput):
            compute_gst(Decimal('-1'), Decimal('18'), False)
        with self.assertRaises(InvalidInput):
            compute_gst(Decimal('100'), Decimal('-5'), False)
        with self.assertRaises(InvalidInput):
            compute_gst('abc', Decimal('18'), False)
        with self.assertRaises(InvalidInput):
            to_decimal('NaN')


class InterStateTests(TestCase):
    def test_same_state_is_intra_state(self):
        self.assertFalse(is_inter_state('Karnataka', 'Karnataka'))

    def test_different_state_is_inter_state(self):
        self.assertTrue(is_inter_state('Karnataka', 'Maharashtra'))

    def test_comparison_is_not_normalized(self):
        self.assertTrue(is_inter_state('Karnataka', 'karnataka'))
        self.assertTrue(is_inter_state('Karnataka', 'Karnataka '))


class LineAmountTests(TestCase):
    def test_line_amounts(self):
        line = compute_line_amounts(2, Decimal('500'), Decimal('0'), Decimal('18'), False)
        self.assertEqual(line.taxable, Decimal('1000.00'))
        self.assertEqual(line.cgst, Decimal('90.00'))
        self.assertEqual(line.sgst, Decimal('90.00'))
        self.assertEqual(line.igst, Decimal('0.00'))
        self.assertEqual(line.total, Decimal('1180.00'))

    def test_discount_reduces_taxable_value(self):
        line = compute_line_amounts(1, Decimal('1000'), Decimal('100'), Decimal('18'), True)
        self.assertEqual(line.taxable, Decimal('900.00'))
        self.assertEqual(line.igst, Decimal('162.00'))
        self.assertEqual(line.total, Decimal('1062.00'))

    def test_discount_cannot_exceed_line_value(self):
        with self.assertRaises(InvalidInput):
            compute_line_amounts(1, Decimal('10'), Decimal('11'), Decimal('18'), False)

    def test_quantity_must_be_positive(self):
        with self.assertRaises(InvalidInput):
            compute_line_amounts(0, Decimal('10'), Decimal('0'), Decimal('18'), False)

    def test_summarize_lines_applies_document_discount_after_tax(self):
        lines = [
            compute_line_amounts(1, Decimal('1000'), 0, Decimal('18'), False),
            compute_line_amounts(2, Decimal('50'), 0, Decimal('0'), False),
        ]
        totals = summarize_lines(lines, Decimal('80'))
        self.assertEqual(totals['subtotal'], Decimal('1100.00'))
        self.assertEqual(totals['tax_amount'], Decimal('180.00'))
        self.assertEqual(totals['discount_amount'], Decimal('80.00'))
        self.assertEqual(totals['total_amount'], Decimal('1200.00'))


class ValidationTests(TestCase):
    def test_gstin(self):
        self.assertTrue(validate_gstin('29ABCDE1234F1Z5'))
        self.assertFalse(validate_gstin('29ABCDE1234F1X5'))
        self.assertFalse(validate_gstin(''))
        self.assertFalse(validate_gstin(None))

    def test_pan(self):
        self.assertTrue(validate_pan('ABCDE1234F'))
        self.assertFalse(validate_pan('ABCD1234F'))

    @override_settings(WEBILL_GST_RATES='0, 5, 18')
    def test_rates_come_from_settings(self):
        self.assertEqual(get_gst_rates(), [Decimal('0'), Decimal('5'), Decimal('18')])


class GSTEndpointTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())

    def test_calculate_intra_state(self):
        response = self.client.post('/api/v1/tax/gst/calculate/', {
            'amount': '1000', 'gst_rate': '18', 'is_inter_state': False,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['cgst'], Decimal('90.00'))
        self.assertEqual(response.data['sgst'], Decimal('90.00'))
        self.assertEqual(response.data['igst'], Decimal('0.00'))
        self.assertEqual(response.data['total_with_tax'], Decimal('1180.00'))
        self.assertFalse(response.data['is_exempt'])

    def test_calculate_from_states(self):
        response = self.client.post('/api/v1/tax/gst/calculate/', {
            'amount': '1000', 'gst_rate': '18', 'seller_state': 'Karnataka', 'buyer_state': 'Kerala',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_inter_state'])
        self.assertEqual(response.data['igst'], Decimal('180.00'))

    def test_exempt_rate(self):
        response = self.client.post('/api/v1/tax/gst/calculate/', {'amount': '250', 'gst_rate': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_exempt'])

    def test_unknown_fields_are_rejected(self):
        response = self.client.post('/api/v1/tax/gst/calculate/', {
            'amount': '1000', 'gst_rate': '18', 'cess': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cess', response.data)

    def test_negative_amount_is_rejected(self):
        response = self.client.post('/api/v1/tax/gst/calculate/', {'amount': '-5', 'gst_rate': '18'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rates(self):
        response = self.client.get('/api/v1/tax/gst/rates/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(Decimal('18'), response.data['rates'])
        self.assertEqual(response.data['default_rate'], Decimal('18'))
