import logging

from django.db import transaction

from ..signals import order_status_changed

logger = logging.getLogger(__name__)


class KDSEventPublisher:
    """Centralized event publishing for kitchen events"""

    @staticmethod
    def order_status_changed(order, previous_status: str = "", new_status: str = "pending"):
        """
        Publish an order status change. An empty previous_status means the
        order has just entered the kitchen queue.

        Receivers only run once the surrounding transaction commits, so they
        never see an order that was rolled back.
        """
        try:
            logger.info(
                f"Publishing order_status_changed event for {order.order_number}: "
                f"{previous_status or '(new)'} -> {new_status}"
            )
            payload = {
                "order_id": order.id,
                "order_number": order.order_number,
                "store_location_id": order.store_location_id,
                "previous_status": previous_status,
                "new_status": new_status,
            }

            if transaction.get_connection().in_atomic_block:
                logger.debug("Still in atomic block, deferring notification")
                transaction.on_commit(lambda: KDSEventPublisher._send_order_status_changed(payload))
            else:
                KDSEventPublisher._send_order_status_changed(payload)

        except Exception as e:
            logger.error(f"Error publishing order_status_changed event: {e}")

    @staticmethod
    def _send_order_status_changed(payload):
        """Actually send the signal after transaction commit"""
        responses = order_status_changed.send_robust(sender=KDSEventPublisher, **payload)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    f"Receiver {getattr(receiver, '__name__', receiver)} failed for order "
                    f"{payload['order_number']}: {response}"
                )
