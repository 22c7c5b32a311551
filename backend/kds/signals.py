from django.dispatch import Signal

# Sent when an order enters or moves through the kitchen queue.
# Provides: order_id, order_number, store_location_id, previous_status, new_status
order_status_changed = Signal()
