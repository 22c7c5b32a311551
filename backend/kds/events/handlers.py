from django.dispatch import receiver
import logging

from ..signals import order_status_changed

logger = logging.getLogger(__name__)


@receiver(order_status_changed)
def log_kitchen_queue_change(sender, order_number, store_location_id, previous_status, new_status, **kwargs):
    """Audit trail of orders entering and moving through the kitchen queue."""
    if not previous_status:
        logger.info(f"Order {order_number} queued for kitchen at location {store_location_id}")
    else:
        logger.info(f"Order {order_number} kitchen status {previous_status} -> {new_status}")
