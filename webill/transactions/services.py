"""
Transaction writes: line pricing, stock movement and payment recording.

Every write runs inside one ``transaction.atomic()`` block so the document,
its lines, the stock counters and the payment row change together.
"""
import logging
from decimal import Decimal
from typing import NamedTuple

from django.conf import settings
from django.db import transaction as db_transaction
from django.db.models import F
from django.utils import timezone

from webill.catalog.models import Item
from webill.core.exceptions import InvalidInput
from webill.core.utils import create_audit_log, generate_payment_number, generate_transaction_number
from webill.invoices.models import Payment
from webill.tax.gst import LineAmounts, ZERO, compute_line_amounts, is_inter_state, quantize_money, summarize_lines
from .models import Transaction, TransactionItem

logger = logging.getLogger('webill.transactions')

AGGREGATE_TOLERANCE = Decimal('0.01')
CLIENT_AGGREGATES = ('subtotal', 'tax_amount', 'total_amount')

# Sign applied to stock_quantity when a transaction of this type is booked
STOCK_DIRECTION = {
    Transaction.TYPE_SALE: -1,
    Transaction.TYPE_PURCHASE: 1,
}


class PricedLine(NamedTuple):
    item: Item
    quantity: int
    unit_price: Decimal
    discount: Decimal
    tax_rate: Decimal
    amounts: LineAmounts

    def as_fields(self):
        return {
            'item': self.item,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'discount': self.discount,
            'tax_rate': self.tax_rate,
            'cgst_amount': self.amounts.cgst,
            'sgst_amount': self.amounts.sgst,
            'igst_amount': self.amounts.igst,
            'total_amount': self.amounts.total,
        }


def supply_is_inter_state(party):
    """A party without a state is billed as an intra-state supply."""
    if party is None or not party.state:
        return False
    return is_inter_state(settings.WEBILL_BUSINESS_STATE, party.state)


def price_lines(lines_data, inter_state):
    """
    Price request lines. Each line holds ``item`` and ``quantity`` and may
    override ``unit_price``, ``discount`` and ``tax_rate``; missing values
    fall back to the item's price and GST rate.
    """
    priced = []
    for index, line in enumerate(lines_data):
        item = line['item']
        unit_price = line.get('unit_price')
        if unit_price is None:
            unit_price = item.unit_price
        tax_rate = line.get('tax_rate')
        if tax_rate is None:
            tax_rate = item.gst_rate
        discount = line.get('discount') or ZERO

        amounts = compute_line_amounts(line['quantity'], unit_price, discount, tax_rate, inter_state)
        client_total = line.get('total_amount')
        if client_total is not None and abs(client_total - amounts.total) > AGGREGATE_TOLERANCE:
            raise InvalidInput(
                f'items[{index}].total_amount does not match the computed line total',
                expected=str(amounts.total),
            )
        priced.append(PricedLine(item, line['quantity'], unit_price, discount, tax_rate, amounts))
    return priced


def check_client_aggregates(data, totals):
    """Client-sent totals are optional; when sent they must agree with the lines."""
    for field in CLIENT_AGGREGATES:
        sent = data.get(field)
        if sent is not None and abs(sent - totals[field]) > AGGREGATE_TOLERANCE:
            raise InvalidInput(f'{field} does not match the line items', expected=str(totals[field]))


def move_stock(txn, lines, reverse=False):
    """Apply (or undo) the stock effect of a sale or purchase on goods."""
    direction = STOCK_DIRECTION.get(txn.type)
    if direction is None:
        return
    if reverse:
        direction = -direction
    for line in lines:
        if line.item.is_service:
            continue
        Item.objects.filter(pk=line.item.pk).update(
            stock_quantity=F('stock_quantity') + direction * line.quantity
        )


def record_payment(amount, method, transaction=None, invoice=None, reference=None, notes=None, now=None):
    now = now or timezone.now()
    return Payment.objects.create(
        payment_number=generate_payment_number(now),
        transaction=transaction,
        invoice=invoice,
        amount=quantize_money(amount),
        payment_date=now,
        payment_method=method,
        status=Payment.STATUS_COMPLETED,
        reference=reference,
        notes=notes,
    )


def _apply_amounts(txn, data, lines):
    if txn.type in Transaction.ITEMIZED_TYPES:
        discount = data.get('discount_amount', txn.discount_amount)
        totals = summarize_lines([line.amounts for line in lines], discount)
        check_client_aggregates(data, totals)
        for field, value in totals.items():
            setattr(txn, field, value)
        return

    amount = data.get('amount', data.get('total_amount'))
    if amount is None:
        amount = txn.total_amount
    amount = quantize_money(amount)
    if amount <= ZERO:
        raise InvalidInput('amount must be greater than zero')
    txn.subtotal = amount
    txn.total_amount = amount
    txn.tax_amount = ZERO
    txn.discount_amount = ZERO


def _write_lines(txn, lines):
    TransactionItem.objects.bulk_create(
        [TransactionItem(transaction=txn, **line.as_fields()) for line in lines]
    )


def _existing_lines(txn):
    return [
        {
            'item': line.item,
            'quantity': line.quantity,
            'unit_price': line.unit_price,
            'discount': line.discount,
            'tax_rate': line.tax_rate,
        }
        for line in txn.items.select_related('item')
    ]


def _maybe_record_payment(txn, data, now):
    if txn.payment_status != Transaction.STATUS_COMPLETED or not txn.payment_method:
        return None
    if txn.payments.filter(status=Payment.STATUS_COMPLETED).exists():
        return None
    return record_payment(
        txn.total_amount,
        txn.payment_method,
        transaction=txn,
        reference=data.get('payment_reference'),
        notes=data.get('payment_notes'),
        now=now,
    )


DOCUMENT_FIELDS = ('customer', 'supplier', 'payment_status', 'payment_method', 'description',
                   'category', 'reference', 'notes', 'date')


def create_transaction(data, request=None, now=None):
    """Create a transaction from validated request data."""
    now = now or timezone.now()
    txn_type = data['type']
    txn = Transaction(
        type=txn_type,
        transaction_number=generate_transaction_number(txn_type, now),
        date=now,
    )
    for field in DOCUMENT_FIELDS:
        if field in data:
            setattr(txn, field, data[field])

    lines = []
    if txn_type in Transaction.ITEMIZED_TYPES:
        lines = price_lines(data.get('items') or [], supply_is_inter_state(txn.party))

    with db_transaction.atomic():
        _apply_amounts(txn, data, lines)
        txn.save()
        _write_lines(txn, lines)
        move_stock(txn, lines)
        payment = _maybe_record_payment(txn, data, now)

    create_audit_log(
        request=request,
        action='create',
        model_name='Transaction',
        object_id=txn.id,
        object_reference=txn.transaction_number,
        changes={'type': txn.type, 'total_amount': str(txn.total_amount), 'lines': len(lines)},
    )
    if payment is not None:
        create_audit_log(
            request=request,
            action='payment_add',
            model_name='Payment',
            object_id=payment.id,
            object_reference=payment.payment_number,
            changes={'amount': str(payment.amount), 'transaction': txn.transaction_number},
        )
    logger.info(f"Created {txn.type} {txn.transaction_number} for {txn.total_amount}")
    return txn


def update_transaction(txn, data, request=None, now=None):
    """
    Update a transaction. Lines are re-priced (the party may have moved to
    another state); when ``items`` is given they replace the old lines and the
    stock effect of the old lines is undone before the new one is applied.
    """
    now = now or timezone.now()
    if 'type' in data and data['type'] != txn.type:
        raise InvalidInput('Transaction type cannot be changed')

    with db_transaction.atomic():
        txn = Transaction.objects.select_for_update().get(pk=txn.pk)
        for field in DOCUMENT_FIELDS:
            if field in data:
                setattr(txn, field, data[field])

        old_lines = []
        lines = []
        if txn.type in Transaction.ITEMIZED_TYPES:
            old_lines = list(txn.items.select_related('item'))
            new_lines_data = data['items'] if 'items' in data else _existing_lines(txn)
            lines = price_lines(new_lines_data, supply_is_inter_state(txn.party))

        _apply_amounts(txn, data, lines)
        txn.save()
        if txn.type in Transaction.ITEMIZED_TYPES:
            move_stock(txn, old_lines, reverse=True)
            txn.items.all().delete()
            _write_lines(txn, lines)
            move_stock(txn, lines)
        payment = _maybe_record_payment(txn, data, now)

    create_audit_log(
        request=request,
        action='update',
        model_name='Transaction',
        object_id=txn.id,
        object_reference=txn.transaction_number,
        changes={'fields': sorted(data), 'total_amount': str(txn.total_amount)},
    )
    if payment is not None:
        create_audit_log(
            request=request,
            action='payment_add',
            model_name='Payment',
            object_id=payment.id,
            object_reference=payment.payment_number,
            changes={'amount': str(payment.amount), 'transaction': txn.transaction_number},
        )
    return txn


def delete_transaction(txn, request=None):
    """Delete a transaction and undo its stock effect; its payments are kept."""
    txn_id, number = txn.id, txn.transaction_number
    with db_transaction.atomic():
        lines = list(txn.items.select_related('item'))
        move_stock(txn, lines, reverse=True)
        txn.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Transaction',
        object_id=txn_id,
        object_reference=number,
        changes={'type': txn.type, 'total_amount': str(txn.total_amount)},
    )
