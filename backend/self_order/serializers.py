"""
Self-order serializers.

The customer-facing API speaks camelCase (sessionCode, outletId, ...) because
the self-order web client is shared with the other ordering channels.
"""

from django.conf import settings
from rest_framework import serializers
from decimal import Decimal

from .models import SelfOrderSession, SelfOrderItem, PaymentMethod


# ===== REQUEST SERIALIZERS =====

class CreateSessionSerializer(serializers.Serializer):
    outletId = serializers.UUIDField()
    tableId = serializers.UUIDField(required=False, allow_null=True)
    language = serializers.CharField(required=False, allow_blank=True, max_length=10)
    customerName = serializers.CharField(required=False, allow_blank=True, max_length=100)


class AddItemSerializer(serializers.Serializer):
    productId = serializers.UUIDField()
    variantId = serializers.UUIDField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    modifiers = serializers.JSONField(required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")


class CreatePaymentSerializer(serializers.Serializer):
    paymentMethod = serializers.ChoiceField(choices=PaymentMethod.choices)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"))
    customerEmail = serializers.EmailField(required=False, allow_blank=True)
    customerPhone = serializers.CharField(required=False, allow_blank=True, max_length=30)


class QrisPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than 0")
        return value


class PaymentCallbackSerializer(serializers.Serializer):
    """Gateway webhook body: orderId carries the transaction id."""

    orderId = serializers.CharField()
    status = serializers.CharField()


class AltPaymentCallbackSerializer(serializers.Serializer):
    sessionCode = serializers.CharField(required=False, allow_blank=True)
    paymentId = serializers.CharField()
    status = serializers.CharField()


class ExtendSessionSerializer(serializers.Serializer):
    minutes = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def validate_minutes(self, value):
        max_minutes = settings.SELF_ORDER["MAX_EXTEND_MINUTES"]
        if value is not None and value > max_minutes:
            raise serializers.ValidationError(f"Extension cannot exceed {max_minutes} minutes")
        return value


# ===== RESPONSE SERIALIZERS =====

class SelfOrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.UUIDField(source='product_id', read_only=True)
    productName = serializers.CharField(source='product.name', read_only=True)
    variantId = serializers.UUIDField(source='variant_id', read_only=True, allow_null=True)
    variantName = serializers.CharField(source='variant.name', read_only=True, default=None)
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=10, decimal_places=2, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = SelfOrderItem
        fields = [
            'id',
            'productId',
            'productName',
            'variantId',
            'variantName',
            'quantity',
            'unitPrice',
            'modifiers',
            'notes',
            'createdAt',
        ]
        read_only_fields = fields


class SelfOrderSessionSerializer(serializers.ModelSerializer):
    sessionId = serializers.UUIDField(source='id', read_only=True)
    sessionCode = serializers.CharField(source='session_code', read_only=True)
    outletId = serializers.UUIDField(source='store_location_id', read_only=True)
    outletName = serializers.CharField(source='store_location.name', read_only=True)
    tableId = serializers.UUIDField(source='table_id', read_only=True, allow_null=True)
    tableNumber = serializers.CharField(source='table.name', read_only=True, default=None)
    customerName = serializers.CharField(source='customer_name', read_only=True)
    orderId = serializers.UUIDField(source='fulfillment_order_id', read_only=True, allow_null=True)
    orderNumber = serializers.CharField(source='fulfillment_order.order_number', read_only=True, default=None)
    expiresAt = serializers.DateTimeField(source='expires_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)
    items = SelfOrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = SelfOrderSession
        fields = [
            'sessionId',
            'sessionCode',
            'outletId',
            'outletName',
            'tableId',
            'tableNumber',
            'status',
            'language',
            'customerName',
            'orderId',
            'orderNumber',
            'expiresAt',
            'createdAt',
            'updatedAt',
            'items',
        ]
        read_only_fields = fields


class SelfOrderSessionListSerializer(SelfOrderSessionSerializer):
    """Staff listing: the session without its cart lines."""

    itemCount = serializers.IntegerField(source='item_count', read_only=True, default=0)

    class Meta(SelfOrderSessionSerializer.Meta):
        fields = [field for field in SelfOrderSessionSerializer.Meta.fields if field != 'items'] + ['itemCount']
        read_only_fields = fields


class CartTotalsSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    taxAmount = serializers.DecimalField(source='tax_amount', max_digits=14, decimal_places=2)
    serviceChargeAmount = serializers.DecimalField(source='service_charge_amount', max_digits=14, decimal_places=2)
    grandTotal = serializers.DecimalField(source='grand_total', max_digits=14, decimal_places=2)
    itemCount = serializers.IntegerField(source='item_count')
