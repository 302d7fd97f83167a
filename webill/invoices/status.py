"""
Invoice status transitions.

``apply_status_transition`` is pure: it reads the invoice, never saves it,
and returns the field changes plus an optional payment to create. The service
layer persists both in one database transaction.
"""
from decimal import Decimal
from typing import NamedTuple, Optional

from django.utils import timezone

from webill.core.exceptions import InvalidStatus
from webill.core.utils import generate_payment_number
from .models import Invoice, Payment

VALID_STATUSES = frozenset(code for code, _label in Invoice.STATUS_CHOICES)


class TransitionResult(NamedTuple):
    invoice_update: dict
    payment_to_create: Optional[dict] = None


def apply_status_transition(invoice, requested_status, payment_details=None, now=None):
    """
    Work out what moving ``invoice`` to ``requested_status`` changes.

    ``payment_details`` may carry ``amount``, ``method`` and ``reference``;
    a payment is only produced for PAID when both amount and method are set.
    OVERDUE is refused silently (status untouched) until the due date passes.
    """
    if requested_status not in VALID_STATUSES:
        raise InvalidStatus(f'Invalid status: {requested_status}')

    now = now or timezone.now()
    payment_details = payment_details or {}
    update = {'status': requested_status, 'updated_at': now}
    payment = None

    if requested_status == Invoice.STATUS_SENT:
        if invoice.status == Invoice.STATUS_DRAFT:
            update['sent_date'] = now

    elif requested_status == Invoice.STATUS_PAID:
        update['paid_amount'] = invoice.total_amount
        update['balance_amount'] = Decimal('0.00')
        amount = payment_details.get('amount')
        method = payment_details.get('method')
        if amount and method:
            payment = {
                'payment_number': generate_payment_number(now),
                'invoice_id': invoice.pk,
                'amount': amount,
                'payment_date': now,
                'payment_method': method,
                'status': Payment.STATUS_COMPLETED,
                'reference': payment_details.get('reference'),
                'notes': f'Payment for invoice {invoice.invoice_number}',
            }

    elif requested_status == Invoice.STATUS_OVERDUE:
        if not now > invoice.due_date:
            del update['status']

    elif requested_status == Invoice.STATUS_CANCELLED:
        update['paid_amount'] = Decimal('0.00')
        update['balance_amount'] = invoice.total_amount

    return TransitionResult(update, payment)
