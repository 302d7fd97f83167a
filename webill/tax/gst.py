"""
GST (Indian Goods and Services Tax) computation.

Intra-state supplies split the tax evenly into CGST and SGST; inter-state
supplies carry the whole tax as IGST. Amounts are ``Decimal`` throughout and
stay unrounded until ``quantize_money`` / ``GSTBreakdown.rounded`` is applied
at the persistence or display boundary.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import NamedTuple

from django.conf import settings

from webill.core.exceptions import InvalidInput

ZERO = Decimal('0')
HUNDRED = Decimal('100')
TWO = Decimal('2')
MONEY_PLACES = Decimal('0.01')

GSTIN_RE = re.compile(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$')
PAN_RE = re.compile(r'^[A-Z]{5}[0-9]{4}[A-Z]{1}$')


def to_decimal(value, field='amount'):
    """Coerce ints, strings and Decimals to Decimal without passing through float."""
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidInput(f'{field} must be a number')
    if not value.is_finite():
        raise InvalidInput(f'{field} must be a number')
    return value


def quantize_money(value):
    """Round half-up to 2 decimal places."""
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


class GSTBreakdown(NamedTuple):
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total: Decimal

    @property
    def is_exempt(self):
        return self.total == ZERO

    def rounded(self):
        return GSTBreakdown(*(quantize_money(part) for part in self))

    def as_dict(self):
        return {
            'cgst': self.cgst,
            'sgst': self.sgst,
            'igst': self.igst,
            'total': self.total,
        }


def compute_gst(amount, gst_rate_percent, is_inter_state):
    """
    Split the GST on ``amount`` at ``gst_rate_percent``.

    A zero rate is a valid exempt supply and yields an all-zero breakdown.
    """
    amount = to_decimal(amount, 'amount')
    rate = to_decimal(gst_rate_percent, 'gst_rate')
    if amount < ZERO:
        raise InvalidInput('amount cannot be negative')
    if rate < ZERO:
        raise InvalidInput('gst_rate cannot be negative')

    total = amount * rate / HUNDRED
    if is_inter_state:
        return GSTBreakdown(cgst=ZERO, sgst=ZERO, igst=total, total=total)
    half = total / TWO
    return GSTBreakdown(cgst=half, sgst=half, igst=ZERO, total=total)


class LineAmounts(NamedTuple):
    taxable: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax: Decimal
    total: Decimal


def compute_line_amounts(quantity, unit_price, discount, tax_rate, inter_state):
    """
    Amounts for one document line: ``quantity * unit_price - discount`` is the
    taxable value and GST is charged on top of it. Results are rounded.
    """
    quantity = to_decimal(quantity, 'quantity')
    unit_price = to_decimal(unit_price, 'unit_price')
    discount = to_decimal(discount or 0, 'discount')
    if quantity <= ZERO:
        raise InvalidInput('quantity must be greater than zero')
    if unit_price < ZERO or discount < ZERO:
        raise InvalidInput('unit_price and discount cannot be negative')

    taxable = quantity * unit_price - discount
    if taxable < ZERO:
        raise InvalidInput('discount cannot exceed the line value')

    gst = compute_gst(taxable, tax_rate, inter_state).rounded()
    taxable = quantize_money(taxable)
    return LineAmounts(
        taxable=taxable,
        cgst=gst.cgst,
        sgst=gst.sgst,
        igst=gst.igst,
        tax=gst.cgst + gst.sgst + gst.igst,
        total=taxable + gst.cgst + gst.sgst + gst.igst,
    )


def summarize_lines(lines, discount_amount=0):
    """
    Document totals from computed lines; the document-level discount comes off
    after tax. Returns subtotal, tax_amount, discount_amount, total_amount.
    """
    discount_amount = quantize_money(discount_amount or 0)
    if discount_amount < ZERO:
        raise InvalidInput('discount_amount cannot be negative')
    subtotal = sum((line.taxable for line in lines), ZERO)
    tax_amount = sum((line.tax for line in lines), ZERO)
    total_amount = subtotal + tax_amount - discount_amount
    if total_amount < ZERO:
        raise InvalidInput('discount_amount cannot exceed the document total')
    return {
        'subtotal': quantize_money(subtotal),
        'tax_amount': quantize_money(tax_amount),
        'discount_amount': discount_amount,
        'total_amount': quantize_money(total_amount),
    }


def is_inter_state(party_a_state, party_b_state):
    # Raw comparison: "Karnataka" and "karnataka" are different states here.
    return party_a_state != party_b_state


def validate_gstin(gstin):
    """15 characters: state code, PAN, entity code, 'Z', checksum."""
    return bool(gstin) and bool(GSTIN_RE.match(gstin))


def validate_pan(pan):
    return bool(pan) and bool(PAN_RE.match(pan))


def get_gst_rates():
    """Configured GST slabs, e.g. [0, 5, 12, 18, 28]."""
    return [Decimal(rate.strip()) for rate in settings.WEBILL_GST_RATES.split(',') if rate.strip()]


def get_default_gst_rate():
    return Decimal(str(settings.WEBILL_DEFAULT_GST_RATE))
