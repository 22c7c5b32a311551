# Generated manually for the self-order service

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StoreLocation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text="Location name (e.g., 'Kemang', 'Grand Indonesia')", max_length=100)),
                ('business_name', models.CharField(blank=True, help_text='Merchant name shown on QR payments. Falls back to the location name.', max_length=100)),
                ('tax_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Tax rate as a percentage (e.g., 10.00 for 10% PB1).', max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0.00')), django.core.validators.MaxValueValidator(Decimal('100.00'))])),
                ('service_charge_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Service charge as a percentage (e.g., 5.00 for 5%).', max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0.00')), django.core.validators.MaxValueValidator(Decimal('100.00'))])),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Store Location',
                'verbose_name_plural': 'Store Locations',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='DiningTable',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text="Table label (e.g., 'A1', 'Patio 3')", max_length=50)),
                ('is_active', models.BooleanField(default=True)),
                ('store_location', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tables', to='settings.storelocation')),
            ],
            options={
                'ordering': ['store_location', 'name'],
            },
        ),
        migrations.AddConstraint(
            model_name='diningtable',
            constraint=models.UniqueConstraint(fields=('store_location', 'name'), name='unique_table_name_per_location'),
        ),
    ]
