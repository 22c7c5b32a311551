from datetime import timedelta
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
import secrets
import string
import time
import uuid

SESSION_CODE_PREFIX = "SO"
_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _to_base36(number):
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    encoded = ""
    while number:
        number, remainder = divmod(number, 36)
        encoded = digits[remainder] + encoded
    return encoded


def generate_session_code():
    """
    Human-shareable session code: 'SO-<base36 ms timestamp>-<4 random chars>'.
    Uppercased so it survives being read aloud or typed from a receipt.
    """
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(4))
    return f"{SESSION_CODE_PREFIX}-{timestamp}-{suffix}".upper()


def self_order_setting(name):
    return settings.SELF_ORDER[name]


class SessionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    SUBMITTED = "submitted", "Submitted"
    PAID = "paid", "Paid"
    EXPIRED = "expired", "Expired"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    QRIS = "qris", "QRIS"
    GOPAY = "gopay", "GoPay"
    OVO = "ovo", "OVO"
    DANA = "dana", "DANA"
    SHOPEEPAY = "shopeepay", "ShopeePay"


EWALLET_METHODS = (
    PaymentMethod.GOPAY,
    PaymentMethod.OVO,
    PaymentMethod.DANA,
    PaymentMethod.SHOPEEPAY,
)


class SelfOrderSession(models.Model):
    """
    A customer-facing ordering session started by scanning a table QR code.

    Status only ever moves forward: active -> submitted -> paid, or
    active/submitted -> expired. Paid and expired are terminal. Status is
    changed exclusively through conditional updates in SessionStore.transition.
    """

    TERMINAL_STATUSES = (SessionStatus.PAID, SessionStatus.EXPIRED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session_code = models.CharField(max_length=32, unique=True, editable=False)
    store_location = models.ForeignKey(
        "settings.StoreLocation",
        on_delete=models.PROTECT,
        related_name="self_order_sessions",
    )
    table = models.ForeignKey(
        "settings.DiningTable",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="self_order_sessions",
    )
    status = models.CharField(
        max_length=20,
        choices=SessionStatus.choices,
        default=SessionStatus.ACTIVE,
        db_index=True,
    )
    language = models.CharField(max_length=10, default="id")
    customer_name = models.CharField(max_length=100, blank=True)

    # Set exactly once, by whichever of submit or payment success gets there first.
    order_created = models.BooleanField(default=False)
    fulfillment_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="self_order_sessions",
    )

    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="self_order_status_expiry_idx"),
        ]

    def __str__(self):
        return f"{self.session_code} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_paid(self):
        return self.status == SessionStatus.PAID

    def is_past_deadline(self, now=None):
        return (now or timezone.now()) > self.expires_at

    @staticmethod
    def default_expiry(created_at):
        return created_at + timedelta(minutes=self_order_setting("SESSION_TTL_MINUTES"))


class SelfOrderItem(models.Model):
    """A cart line. Only created while the owning session is active."""

    session = models.ForeignKey(
        SelfOrderSession,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="self_order_items",
    )
    variant = models.ForeignKey(
        "products.ProductVariant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="self_order_items",
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    modifiers = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.quantity} x {self.product.name} in {self.session.session_code}"

    @property
    def unit_price(self):
        """Variant price if a variant is chosen, otherwise the product's base price."""
        if self.variant_id:
            return self.variant.price
        return self.product.price


class PaymentReference(models.Model):
    """
    Orchestration record of one payment attempt for a session.

    Not the payment system's ledger: it maps a gateway transaction id back to
    its session and remembers the last-known processing status. Deleted with
    its session by the cleanup sweep.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        SUCCESS = "success", "Success"
        FAILED = "failed", "Failed"

    session = models.ForeignKey(
        SelfOrderSession,
        on_delete=models.CASCADE,
        related_name="payment_references",
    )
    transaction_id = models.CharField(max_length=64, unique=True)
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=30, blank=True)

    # Soft display deadline for QR and redirect payments; null for cash.
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        get_latest_by = ["created_at", "id"]

    def __str__(self):
        return f"{self.transaction_id} ({self.method}, {self.status})"

    def is_expired(self, now=None):
        return self.expires_at is not None and (now or timezone.now()) > self.expires_at
