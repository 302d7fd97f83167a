# Generated manually
from django.db import migrations, models

import webill.parties.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Party',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('CUSTOMER', 'Customer'), ('SUPPLIER', 'Supplier'), ('VENDOR', 'Vendor')], default='CUSTOMER', max_length=20)),
                ('name', models.CharField(max_length=200)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('address', models.TextField(blank=True)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('state', models.CharField(blank=True, max_length=100)),
                ('country', models.CharField(blank=True, default=webill.parties.models.default_country, max_length=100, null=True)),
                ('postal_code', models.CharField(blank=True, max_length=20)),
                ('tax_number', models.CharField(blank=True, help_text='GSTIN', max_length=15)),
                ('payment_terms', models.PositiveIntegerField(blank=True, help_text='Credit period in days', null=True)),
                ('credit_limit', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('notes', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'parties',
                'ordering': ['name'],
                'verbose_name_plural': 'parties',
                'indexes': [
                    models.Index(fields=['type'], name='parties_type_idx'),
                    models.Index(fields=['name'], name='parties_name_idx'),
                ],
            },
        ),
    ]
