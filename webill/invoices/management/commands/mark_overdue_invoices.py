"""
Management command to move SENT invoices past their due date to OVERDUE.
"""
from django.core.management.base import BaseCommand
from django.utils import timezone

from webill.invoices.models import Invoice
from webill.invoices.services import mark_overdue_invoices


class Command(BaseCommand):
    help = 'Mark sent invoices whose due date has passed as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the invoices that would be marked without changing them',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        candidates = Invoice.objects.filter(
            status=Invoice.STATUS_SENT, due_date__lt=now
        ).select_related('customer').order_by('due_date')

        if options['dry_run']:
            self.stdout.write(self.style.WARNING('DRY RUN MODE - No invoices will be changed\n'))
            for invoice in candidates:
                self.stdout.write(f'  {invoice.invoice_number}  {invoice.customer.name}  due {invoice.due_date:%Y-%m-%d}')
            self.stdout.write(f'{candidates.count()} invoice(s) would be marked overdue.')
            return

        count = mark_overdue_invoices(now=now)
        self.stdout.write(self.style.SUCCESS(f'Marked {count} invoice(s) as overdue.'))
