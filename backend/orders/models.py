from django.db import models, transaction, IntegrityError
from django.utils import timezone
from decimal import Decimal
import logging
import uuid

logger = logging.getLogger(__name__)


class Order(models.Model):
    """
    A kitchen-facing fulfillment order.

    Orders are append-only from the point of view of ordering channels: a channel
    creates the order with its line items and hands it to the kitchen, later state
    changes belong to kitchen and cashier workflows.
    """

    class OrderStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class OrderType(models.TextChoices):
        DINE_IN = "dine_in", "Dine In"
        TAKEAWAY = "takeaway", "Takeaway"

    class OrderSource(models.TextChoices):
        POS = "pos", "Point of Sale"
        SELF_ORDER = "self_order", "Self Order"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=20, blank=True)
    store_location = models.ForeignKey(
        "settings.StoreLocation",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    table = models.ForeignKey(
        "settings.DiningTable",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    order_type = models.CharField(
        max_length=20, choices=OrderType.choices, default=OrderType.DINE_IN
    )
    source = models.CharField(
        max_length=20, choices=OrderSource.choices, default=OrderSource.POS
    )
    customer_name = models.CharField(max_length=100, blank=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    service_charge_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["store_location", "order_number"],
                name="unique_order_number_per_location",
            )
        ]
        indexes = [
            models.Index(fields=["store_location", "created_at"], name="order_location_created_idx"),
        ]

    def __str__(self):
        return f"Order {self.order_number or self.id} ({self.get_status_display()})"

    def save(self, *args, **kwargs):
        if self.order_number:
            super().save(*args, **kwargs)
            return

        max_retries = 5
        for attempt in range(max_retries):
            self.order_number = self._generate_daily_order_number(offset=attempt)
            try:
                # Savepoint so a collision does not poison an enclosing transaction.
                with transaction.atomic():
                    super().save(*args, **kwargs)
                return
            except IntegrityError:
                logger.warning(
                    f"Order number {self.order_number} already taken at {self.store_location_id}, retrying"
                )
        self.order_number = ""
        raise IntegrityError("Failed to generate a unique order number after multiple retries.")

    def _generate_daily_order_number(self, offset=0):
        """
        Formats as 'ORD-YY-MM-DD-NNN' where NNN is the position of this order
        among the location's orders created today.
        """
        today = timezone.localdate()
        todays_orders = Order.objects.filter(
            store_location_id=self.store_location_id,
            created_at__date=today,
        ).count()
        return f"ORD-{today:%y-%m-%d}-{todays_orders + 1 + offset:03d}"


class OrderItem(models.Model):
    """
    A line on a fulfillment order. Product details are snapshotted at creation
    so later catalog edits do not change what the kitchen was asked to make.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    variant = models.ForeignKey(
        "products.ProductVariant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=100)
    variant_name = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    price_at_sale = models.DecimalField(max_digits=10, decimal_places=2)
    modifiers = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.quantity} x {self.product_name}"

    @property
    def total_price(self):
        return self.price_at_sale * self.quantity
