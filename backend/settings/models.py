from django.db import models
from decimal import Decimal
from django.core.validators import MinValueValidator, MaxValueValidator
import uuid


class StoreLocation(models.Model):
    """
    A physical outlet that customers order from.

    Source of truth for the location-specific pricing configuration used when
    a self-order cart is totalled: the tax rate and the service charge rate,
    both stored as percentages (10.00 means 10%).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=100,
        help_text="Location name (e.g., 'Kemang', 'Grand Indonesia')"
    )
    business_name = models.CharField(
        max_length=100,
        blank=True,
        help_text="Merchant name shown on QR payments. Falls back to the location name."
    )
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('100.00'))],
        help_text="Tax rate as a percentage (e.g., 10.00 for 10% PB1)."
    )
    service_charge_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('100.00'))],
        help_text="Service charge as a percentage (e.g., 5.00 for 5%)."
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Store Location"
        verbose_name_plural = "Store Locations"

    def __str__(self):
        return self.name

    def get_merchant_name(self):
        return self.business_name or self.name


class DiningTable(models.Model):
    """A table at a store location; self-order QR codes are printed per table."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store_location = models.ForeignKey(
        StoreLocation,
        on_delete=models.CASCADE,
        related_name='tables'
    )
    name = models.CharField(max_length=50, help_text="Table label (e.g., 'A1', 'Patio 3')")
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['store_location', 'name']
        constraints = [
            models.UniqueConstraint(
                fields=['store_location', 'name'],
                name='unique_table_name_per_location'
            )
        ]

    def __str__(self):
        return f"{self.store_location.name} - {self.name}"
