"""
Invoice persistence: creation, updates, status changes, reminders and the
read-side analytics built on top of them.
"""
import logging
import math
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail
from django.db import DatabaseError, transaction as db_transaction
from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from webill.core.exceptions import (
    ConstraintViolation, DuplicateInvoice, InvalidInput, InvalidStatus, InvoiceNotFound,
    PersistenceFailure, TransactionNotFound,
)
from webill.core.models import Setting
from webill.core.utils import create_audit_log, generate_invoice_number
from webill.tax.gst import ZERO, is_inter_state, quantize_money, summarize_lines
from webill.transactions.models import Transaction
from webill.transactions.services import check_client_aggregates, price_lines
from .models import Invoice, InvoiceItem, Payment
from .status import VALID_STATUSES, apply_status_transition

logger = logging.getLogger('webill.invoices')

SECONDS_PER_DAY = 24 * 60 * 60
FINAL_NOTICE_AFTER_DAYS = 30
DEFAULT_TERMS_CONDITIONS = 'Payment is due within the specified period. Late payments may incur additional charges.'

EDITABLE_FIELDS = ('customer', 'issue_date', 'payment_terms', 'payment_terms_days', 'notes',
                   'terms_conditions', 'billing_address', 'shipping_address', 'place_of_supply',
                   'po_number', 'reference', 'exchange_rate')


def _days_between(later, earlier):
    """Whole days from ``earlier`` to ``later``, rounded up; 0 when not later."""
    seconds = (later - earlier).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY) if seconds > 0 else 0


def _place_is_inter_state(place_of_supply):
    if not place_of_supply:
        return False
    return is_inter_state(settings.WEBILL_BUSINESS_STATE, place_of_supply)


def _write_lines(invoice, lines, descriptions=None):
    descriptions = descriptions or {}
    InvoiceItem.objects.bulk_create([
        InvoiceItem(invoice=invoice, description=descriptions.get(index, ''), **line.as_fields())
        for index, line in enumerate(lines)
    ])


def _refresh_balance(invoice):
    if invoice.status == Invoice.STATUS_CANCELLED:
        invoice.balance_amount = invoice.total_amount
    else:
        invoice.balance_amount = invoice.total_amount - invoice.paid_amount


def _price_invoice(invoice, data, lines_data):
    lines = price_lines(lines_data, _place_is_inter_state(invoice.place_of_supply))
    totals = summarize_lines([line.amounts for line in lines], data.get('discount_amount', invoice.discount_amount))
    check_client_aggregates(data, totals)
    for field, value in totals.items():
        setattr(invoice, field, value)
    _refresh_balance(invoice)
    return lines


def create_invoice(data, request=None, now=None):
    """Create an invoice; totals are computed from the items."""
    now = now or timezone.now()
    customer = data['customer']
    txn = data.get('transaction')
    if txn is not None:
        existing = Invoice.objects.filter(transaction=txn).first()
        if existing is not None:
            raise DuplicateInvoice(invoice_id=existing.id)

    terms_days = data.get('payment_terms_days', settings.WEBILL_DEFAULT_PAYMENT_TERMS_DAYS)
    issue_date = data.get('issue_date') or now
    invoice = Invoice(
        invoice_number=generate_invoice_number(now),
        customer=customer,
        transaction=txn,
        issue_date=issue_date,
        due_date=issue_date + timedelta(days=terms_days),
        status=data.get('status', Invoice.STATUS_DRAFT),
        payment_terms=data.get('payment_terms') or f'Net {terms_days}',
        payment_terms_days=terms_days,
        currency=settings.WEBILL_CURRENCY,
        billing_address=data.get('billing_address', customer.address),
        shipping_address=data.get('shipping_address', customer.address),
        place_of_supply=data.get('place_of_supply', customer.state),
        terms_conditions=data.get('terms_conditions', DEFAULT_TERMS_CONDITIONS),
    )
    for field in ('notes', 'po_number', 'reference', 'exchange_rate'):
        if field in data:
            setattr(invoice, field, data[field])
    if invoice.status == Invoice.STATUS_SENT:
        invoice.sent_date = now

    descriptions = {index: line.get('description', '') for index, line in enumerate(data['items'])}
    with db_transaction.atomic():
        lines = _price_invoice(invoice, data, data['items'])
        invoice.save()
        _write_lines(invoice, lines, descriptions)

    create_audit_log(
        request=request,
        action='invoice_create',
        model_name='Invoice',
        object_id=invoice.id,
        object_name=customer.name,
        object_reference=invoice.invoice_number,
        changes={'total_amount': str(invoice.total_amount), 'status': invoice.status},
    )
    logger.info(f"Created invoice {invoice.invoice_number} for {customer.name}: {invoice.total_amount}")
    return invoice


def create_invoice_from_transaction(transaction_id, request=None, now=None):
    """Turn a sale into a draft invoice with the same lines and totals."""
    now = now or timezone.now()
    try:
        txn = Transaction.objects.select_related('customer').get(pk=transaction_id)
    except (Transaction.DoesNotExist, ValueError, TypeError):
        raise TransactionNotFound()

    if txn.type != Transaction.TYPE_SALE:
        raise InvalidInput('Only sales transactions can be converted to invoices')
    if txn.customer is None:
        raise InvalidInput('Transaction must have a customer to create an invoice')
    existing = Invoice.objects.filter(transaction=txn).first()
    if existing is not None:
        raise DuplicateInvoice(invoice_id=existing.id)

    terms_days = settings.WEBILL_DEFAULT_PAYMENT_TERMS_DAYS
    customer = txn.customer
    invoice = Invoice(
        invoice_number=generate_invoice_number(now),
        customer=customer,
        transaction=txn,
        issue_date=now,
        due_date=now + timedelta(days=terms_days),
        status=Invoice.STATUS_DRAFT,
        subtotal=txn.subtotal,
        tax_amount=txn.tax_amount,
        discount_amount=txn.discount_amount,
        total_amount=txn.total_amount,
        paid_amount=ZERO,
        balance_amount=txn.total_amount,
        payment_terms=f'Net {terms_days}',
        payment_terms_days=terms_days,
        notes=f'Invoice generated from transaction {txn.transaction_number}',
        terms_conditions=DEFAULT_TERMS_CONDITIONS,
        currency=settings.WEBILL_CURRENCY,
        billing_address=customer.address,
        shipping_address=customer.address,
        place_of_supply=customer.state,
    )
    with db_transaction.atomic():
        invoice.save()
        InvoiceItem.objects.bulk_create([
            InvoiceItem(
                invoice=invoice,
                item_id=line.item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=line.discount,
                tax_rate=line.tax_rate,
                cgst_amount=line.cgst_amount,
                sgst_amount=line.sgst_amount,
                igst_amount=line.igst_amount,
                total_amount=line.total_amount,
            )
            for line in txn.items.all()
        ])

    create_audit_log(
        request=request,
        action='invoice_create',
        model_name='Invoice',
        object_id=invoice.id,
        object_name=customer.name,
        object_reference=invoice.invoice_number,
        changes={'transaction': txn.transaction_number, 'total_amount': str(invoice.total_amount)},
    )
    return invoice


def update_invoice(invoice, data, request=None):
    """
    Update invoice fields. Items, when given, replace the old ones; totals,
    balance and due date are recomputed either way.
    """
    with db_transaction.atomic():
        invoice = Invoice.objects.select_for_update().select_related('customer').get(pk=invoice.pk)
        if invoice.status in (Invoice.STATUS_PAID, Invoice.STATUS_CANCELLED):
            raise ConstraintViolation('Only draft, sent or overdue invoices can be edited')
        for field in EDITABLE_FIELDS:
            if field in data:
                setattr(invoice, field, data[field])
        if 'customer' in data and 'place_of_supply' not in data:
            invoice.place_of_supply = invoice.customer.state
        invoice.due_date = invoice.issue_date + timedelta(days=invoice.payment_terms_days)

        if 'items' in data:
            lines_data = data['items']
            descriptions = {index: line.get('description', '') for index, line in enumerate(lines_data)}
        else:
            existing = list(invoice.items.select_related('item'))
            lines_data = [
                {
                    'item': line.item,
                    'quantity': line.quantity,
                    'unit_price': line.unit_price,
                    'discount': line.discount,
                    'tax_rate': line.tax_rate,
                }
                for line in existing
            ]
            descriptions = {index: line.description for index, line in enumerate(existing)}

        lines = _price_invoice(invoice, data, lines_data)
        invoice.save()
        invoice.items.all().delete()
        _write_lines(invoice, lines, descriptions)

    create_audit_log(
        request=request,
        action='invoice_update',
        model_name='Invoice',
        object_id=invoice.id,
        object_name=invoice.customer.name,
        object_reference=invoice.invoice_number,
        changes={'fields': sorted(data), 'total_amount': str(invoice.total_amount)},
    )
    return invoice


def delete_invoice(invoice, request=None):
    if invoice.status != Invoice.STATUS_DRAFT:
        raise ConstraintViolation('Only draft invoices can be deleted')
    invoice_id, number = invoice.id, invoice.invoice_number
    invoice.delete()
    create_audit_log(
        request=request,
        action='invoice_delete',
        model_name='Invoice',
        object_id=invoice_id,
        object_reference=number,
    )


def transition_invoice_status(invoice_id, requested_status, payment_details=None, request=None, now=None):
    """
    Persist a status change and the payment it may produce, atomically.

    Returns the refreshed invoice and the created payment (or None).
    """
    if requested_status not in VALID_STATUSES:
        raise InvalidStatus(f'Invalid status: {requested_status}')
    now = now or timezone.now()

    try:
        with db_transaction.atomic():
            invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
            if invoice is None:
                raise InvoiceNotFound()
            previous_status = invoice.status
            result = apply_status_transition(invoice, requested_status, payment_details, now)
            Invoice.objects.filter(pk=invoice.pk).update(**result.invoice_update)
            payment = None
            if result.payment_to_create is not None:
                payment = Payment.objects.create(**result.payment_to_create)
    except DatabaseError as exc:
        logger.exception(f"Failed to update status of invoice {invoice_id}: {exc}")
        raise PersistenceFailure('Failed to update invoice status') from exc

    invoice.refresh_from_db()
    create_audit_log(
        request=request,
        action='invoice_status',
        model_name='Invoice',
        object_id=invoice.id,
        object_reference=invoice.invoice_number,
        changes={'old_status': previous_status, 'requested_status': requested_status, 'new_status': invoice.status},
    )
    if payment is not None:
        create_audit_log(
            request=request,
            action='payment_add',
            model_name='Payment',
            object_id=payment.id,
            object_reference=payment.payment_number,
            changes={'amount': str(payment.amount), 'invoice': invoice.invoice_number},
        )
    return invoice, payment


def status_analytics(invoice, now=None):
    """Due-date position and payment progress of one invoice"""
    now = now or timezone.now()
    unpaid = invoice.status != Invoice.STATUS_PAID
    days_past_due = _days_between(now, invoice.due_date) if unpaid else 0
    days_until_due = _days_between(invoice.due_date, now) if unpaid else 0
    if invoice.total_amount > 0:
        progress = quantize_money(invoice.paid_amount / invoice.total_amount * 100)
    else:
        progress = Decimal('0.00')
    return {
        'current_status': invoice.status,
        'days_past_due': days_past_due,
        'days_until_due': days_until_due,
        'is_overdue': days_past_due > 0,
        'total_paid': invoice.paid_amount,
        'balance_remaining': invoice.balance_amount,
        'payment_progress': progress,
        'reminders_sent': invoice.reminders_sent,
        'last_reminder_date': invoice.last_reminder_date,
    }


def _reminder_text(invoice, reminder_type, days_overdue):
    name = invoice.customer.name
    number = invoice.invoice_number
    due = timezone.localtime(invoice.due_date).strftime('%d %b %Y')
    business_name = Setting.get_value('business_name', settings.WEBILL_BUSINESS_NAME)
    sign_off = f'\n\nBest regards,\n{business_name}'

    if reminder_type == 'final_notice':
        return (
            f'Final Notice - Invoice {number}',
            f'Dear {name},\n\nThis is a FINAL NOTICE for Invoice {number}, which is now {days_overdue} days overdue.'
            f'\n\nAmount Due: Rs. {invoice.balance_amount}\nOriginal Due Date: {due}'
            f'\n\nImmediate payment is required. Please contact us if you have any questions.{sign_off}',
        )
    if reminder_type == 'thank_you':
        return (
            f'Thank You - Payment Received for Invoice {number}',
            f'Dear {name},\n\nThank you for your payment of Rs. {invoice.paid_amount} for Invoice {number}.'
            f'\n\nWe appreciate your prompt payment and continued business.{sign_off}',
        )
    if days_overdue > 0:
        return (
            f'Overdue Payment Reminder - Invoice {number}',
            f'Dear {name},\n\nYour payment for Invoice {number} is now {days_overdue} days overdue. '
            f'The original due date was {due}.\n\nAmount Due: Rs. {invoice.balance_amount}'
            f'\n\nPlease arrange payment at your earliest convenience.{sign_off}',
        )
    return (
        f'Payment Reminder - Invoice {number}',
        f'Dear {name},\n\nThis is a friendly reminder that payment for Invoice {number} is due on {due}.'
        f'\n\nAmount Due: Rs. {invoice.balance_amount}\n\nThank you for your business.{sign_off}',
    )


def send_reminder(invoice, reminder_type='payment', custom_message=None, request=None, now=None):
    """
    Email a reminder to the customer and record it on the invoice. A SENT
    invoice past its due date becomes OVERDUE.
    """
    now = now or timezone.now()
    if invoice.status in (Invoice.STATUS_PAID, Invoice.STATUS_CANCELLED):
        raise ConstraintViolation('Cannot send reminder for paid or cancelled invoices')
    if not invoice.customer.email:
        raise InvalidInput('Customer email is required to send reminders')

    days_overdue = _days_between(now, invoice.due_date)
    subject, message = _reminder_text(invoice, reminder_type, days_overdue)
    if custom_message:
        message = custom_message

    recipients = [invoice.customer.email]
    with db_transaction.atomic():
        invoice.reminders_sent += 1
        invoice.last_reminder_date = now
        if invoice.status == Invoice.STATUS_SENT and now > invoice.due_date:
            invoice.status = Invoice.STATUS_OVERDUE
        invoice.save(update_fields=['reminders_sent', 'last_reminder_date', 'status', 'updated_at'])

        create_audit_log(
            request=request,
            action='invoice_reminder',
            model_name='Invoice',
            object_id=invoice.id,
            object_name=invoice.customer.name,
            object_reference=invoice.invoice_number,
            changes={'reminder_type': reminder_type, 'reminders_sent': invoice.reminders_sent},
        )
        # Mail goes out only once the reminder is recorded
        db_transaction.on_commit(
            lambda: send_mail(subject, message, settings.DEFAULT_FROM_EMAIL, recipients)
        )

    return {
        'invoice_number': invoice.invoice_number,
        'customer_email': invoice.customer.email,
        'customer_name': invoice.customer.name,
        'reminder_type': reminder_type,
        'subject': subject,
        'message': message,
        'sent_at': now,
        'reminder_count': invoice.reminders_sent,
    }


def reminder_stats(invoice, now=None):
    now = now or timezone.now()
    days_overdue = _days_between(now, invoice.due_date)
    return {
        'total_reminders_sent': invoice.reminders_sent,
        'last_reminder_date': invoice.last_reminder_date,
        'days_overdue': days_overdue,
        'days_until_due': _days_between(invoice.due_date, now),
        'is_overdue': days_overdue > 0,
        'can_send_reminder': invoice.status not in (Invoice.STATUS_PAID, Invoice.STATUS_CANCELLED),
        'suggested_reminder_type': 'final_notice' if days_overdue > FINAL_NOTICE_AFTER_DAYS else 'payment',
    }


def mark_overdue_invoices(now=None):
    """Move every SENT invoice whose due date has passed to OVERDUE."""
    now = now or timezone.now()
    overdue_ids = list(
        Invoice.objects.filter(status=Invoice.STATUS_SENT, due_date__lt=now).values_list('id', flat=True)
    )
    for invoice_id in overdue_ids:
        transition_invoice_status(invoice_id, Invoice.STATUS_OVERDUE, now=now)
    return len(overdue_ids)


def invoice_analytics(period_days=30, customer_id=None, now=None):
    """Counts and sums by status, outstanding and overdue amounts, top customers"""
    now = now or timezone.now()
    queryset = Invoice.objects.filter(created_at__gte=now - timedelta(days=period_days))
    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)

    by_status = {
        row['status']: {
            'count': row['count'],
            'total_amount': row['total'] or ZERO,
            'balance_amount': row['balance'] or ZERO,
        }
        for row in queryset.values('status').annotate(
            count=Count('id'), total=Sum('total_amount'), balance=Sum('balance_amount')
        )
    }
    totals = queryset.aggregate(total=Sum('total_amount'), average=Avg('total_amount'))
    paid = queryset.filter(status=Invoice.STATUS_PAID).aggregate(total=Sum('paid_amount'))['total']
    outstanding = queryset.filter(
        status__in=[Invoice.STATUS_SENT, Invoice.STATUS_OVERDUE]
    ).aggregate(total=Sum('balance_amount'))['total']

    overdue = [
        {
            'id': invoice.id,
            'invoice_number': invoice.invoice_number,
            'customer_name': invoice.customer.name,
            'due_date': invoice.due_date,
            'balance_amount': invoice.balance_amount,
            'days_overdue': _days_between(now, invoice.due_date),
        }
        for invoice in queryset.filter(
            Q(status=Invoice.STATUS_OVERDUE) | Q(status=Invoice.STATUS_SENT, due_date__lt=now)
        ).select_related('customer').order_by('due_date')[:10]
    ]

    payments = Payment.objects.filter(
        invoice__in=queryset, status=Payment.STATUS_COMPLETED
    ).aggregate(total=Sum('amount'), count=Count('id'), average=Avg('amount'))

    top_customers = [
        {
            'customer_id': row['customer_id'],
            'customer_name': row['customer__name'],
            'invoice_count': row['count'],
            'total_amount': row['total'] or ZERO,
            'paid_amount': row['paid'] or ZERO,
        }
        for row in queryset.values('customer_id', 'customer__name').annotate(
            count=Count('id'), total=Sum('total_amount'), paid=Sum('paid_amount')
        ).order_by('-total')[:5]
    ]

    return {
        'period_days': period_days,
        'total_invoices': queryset.count(),
        'by_status': by_status,
        'total_revenue': totals['total'] or ZERO,
        'average_invoice_value': quantize_money(totals['average'] or 0),
        'paid_revenue': paid or ZERO,
        'outstanding_revenue': outstanding or ZERO,
        'overdue_invoices': overdue,
        'payments': {
            'total_amount': payments['total'] or ZERO,
            'count': payments['count'],
            'average_amount': quantize_money(payments['average'] or 0),
        },
        'top_customers': top_customers,
    }
