"""
Management command to convert stored USD amounts to INR, once.
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from webill.core.currency import DEFAULT_USD_TO_INR_RATE, migrate_amounts
from webill.core.exceptions import InvalidInput
from webill.core.utils import create_audit_log


class DryRunRollback(Exception):
    """Raised to roll back a dry run"""


class Command(BaseCommand):
    help = 'Multiply every stored money amount by the USD to INR exchange rate (run once)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--rate',
            type=str,
            default=DEFAULT_USD_TO_INR_RATE,
            help=f'Exchange rate, 1 USD = RATE INR (default: {DEFAULT_USD_TO_INR_RATE})',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the migration and roll it back, reporting what would change',
        )

    def handle(self, *args, **options):
        rate = options['rate']
        dry_run = options['dry_run']

        self.stdout.write(self.style.SUCCESS(f'Converting amounts at 1 USD = {rate} INR...\n'))
        if dry_run:
            self.stdout.write(self.style.WARNING('DRY RUN MODE - Changes will be rolled back\n'))

        summary = None
        try:
            with transaction.atomic():
                summary = migrate_amounts(rate)
                if dry_run:
                    raise DryRunRollback()
        except DryRunRollback:
            pass
        except InvalidInput as exc:
            raise CommandError(exc.message)

        for key, count in summary.items():
            self.stdout.write(f'  {key}: {count}')

        if dry_run:
            self.stdout.write(self.style.WARNING('\nDry run complete, nothing was saved.'))
            return

        create_audit_log(
            action='currency_migration',
            model_name='Currency',
            object_id='USD-INR',
            object_reference=str(rate),
            changes=summary,
        )
        self.stdout.write(self.style.SUCCESS('\nCurrency migration completed.'))
