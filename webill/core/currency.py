"""
One-shot conversion of every stored money amount from USD to INR.

Running it twice multiplies twice: there is no record of a previous run, so
it must only be applied once per database.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.db.models.functions import Round

from webill.catalog.models import Item
from webill.invoices.models import Invoice, InvoiceItem, Payment
from webill.parties.models import Party
from webill.tax.gst import get_default_gst_rate, to_decimal
from webill.transactions.models import Transaction, TransactionItem
from .exceptions import InvalidInput

logger = logging.getLogger('webill.core')

DEFAULT_USD_TO_INR_RATE = '83.0'
LEGACY_COUNTRIES = ('USA', 'United States')

LINE_MONEY_FIELDS = ('unit_price', 'discount', 'cgst_amount', 'sgst_amount', 'igst_amount', 'total_amount')
DOCUMENT_MONEY_FIELDS = ('subtotal', 'tax_amount', 'discount_amount', 'total_amount')

# (summary key, model, money columns, row filter)
MONEY_COLUMNS = [
    ('parties', Party, ('credit_limit',), Q(credit_limit__isnull=False)),
    ('items', Item, ('unit_price', 'cost_price'), Q()),
    ('transactions', Transaction, DOCUMENT_MONEY_FIELDS, Q()),
    ('transaction_items', TransactionItem, LINE_MONEY_FIELDS, Q()),
    ('invoices', Invoice, DOCUMENT_MONEY_FIELDS + ('paid_amount', 'balance_amount'), Q()),
    ('invoice_items', InvoiceItem, LINE_MONEY_FIELDS, Q()),
    ('payments', Payment, ('amount',), Q()),
]


def _scaled(field, rate):
    return Round(F(field) * rate, 2)


def migrate_amounts(rate=DEFAULT_USD_TO_INR_RATE):
    """
    Multiply all money columns by ``rate`` inside one database transaction,
    then normalize party countries to India and replace zero GST rates on
    items with the default rate. Returns the number of rows touched per table.
    """
    rate = to_decimal(rate, 'rate')
    if rate <= 0:
        raise InvalidInput('Exchange rate must be greater than zero')

    summary = {}
    with transaction.atomic():
        for key, model, fields, row_filter in MONEY_COLUMNS:
            changes = {field: _scaled(field, rate) for field in fields}
            if model is Invoice:
                changes['currency'] = 'INR'
            summary[key] = model.objects.filter(row_filter).update(**changes)
            logger.info(f"Currency migration: updated {summary[key]} {key} rows")

        summary['party_countries'] = Party.objects.filter(
            Q(country__isnull=True) | Q(country='') | Q(country__in=LEGACY_COUNTRIES)
        ).update(country=settings.WEBILL_DEFAULT_COUNTRY)
        summary['item_gst_rates'] = Item.objects.filter(gst_rate=0).update(gst_rate=get_default_gst_rate())

    logger.info(f"Currency migration at rate {rate} finished: {summary}")
    return summary
