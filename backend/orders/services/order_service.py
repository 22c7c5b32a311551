from decimal import Decimal
from django.db import transaction
import logging

from orders.models import Order, OrderItem

logger = logging.getLogger(__name__)


class OrderService:
    """Creation of fulfillment orders handed to the kitchen by ordering channels."""

    @staticmethod
    @transaction.atomic
    def create_fulfillment_order(
        store_location,
        lines,
        table=None,
        source=Order.OrderSource.POS,
        order_type=Order.OrderType.DINE_IN,
        customer_name="",
        totals=None,
    ) -> Order:
        """
        Creates a pending order with its line items in one transaction.

        Args:
            store_location: StoreLocation the order is prepared at
            lines: iterable of dicts with product, variant, product_name,
                variant_name, quantity, unit_price, modifiers and notes
            table: Optional DiningTable
            source: Channel that produced the order
            order_type: Dine in or takeaway
            customer_name: Name to call out when the order is ready
            totals: Optional dict with subtotal, tax_amount, service_charge_amount
                and grand_total already computed by the channel

        Raises:
            ValueError: If store_location is missing or there are no lines
        """
        if store_location is None:
            raise ValueError("store_location parameter is required for creating orders")

        lines = list(lines)
        if not lines:
            raise ValueError("An order needs at least one line item")

        totals = totals or {}
        order = Order.objects.create(
            store_location=store_location,
            table=table,
            source=source,
            order_type=order_type,
            status=Order.OrderStatus.PENDING,
            customer_name=customer_name or "",
            subtotal=totals.get("subtotal", Decimal("0.00")),
            tax_total=totals.get("tax_amount", Decimal("0.00")),
            service_charge_total=totals.get("service_charge_amount", Decimal("0.00")),
            grand_total=totals.get("grand_total", Decimal("0.00")),
        )

        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=line.get("product"),
                variant=line.get("variant"),
                product_name=line["product_name"],
                variant_name=line.get("variant_name", ""),
                quantity=line["quantity"],
                price_at_sale=line["unit_price"],
                modifiers=line.get("modifiers") or [],
                notes=line.get("notes") or "",
            )
            for line in lines
        ])

        logger.info(
            f"Created {source} order {order.order_number} with {len(lines)} line(s) "
            f"at {store_location.name}"
        )
        return order
