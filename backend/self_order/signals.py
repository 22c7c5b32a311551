from django.db import transaction
from django.dispatch import Signal
import logging

logger = logging.getLogger(__name__)


# ===== CUSTOM SIGNALS =====

# Signal fired when a session's cart has been handed to the kitchen
# Provides: sender=SelfOrderSession, session=session_instance, order=order_instance
session_submitted = Signal()

# Signal fired when a session is marked paid by a payment callback
# Provides: sender=SelfOrderSession, session=session_instance, transaction_id=str
session_paid = Signal()

# Signal fired when a session is expired by the sweep or by staff
# Provides: sender=SelfOrderSession, session_code=str, reason='sweep'|'manual'
session_expired = Signal()


def send_after_commit(signal, sender, **kwargs):
    """
    Send a lifecycle signal once the current transaction commits.
    Receiver failures are logged and never propagate into the state change.
    """

    def _send():
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    f"Self-order signal receiver {getattr(receiver, '__name__', receiver)} failed: {response}"
                )

    transaction.on_commit(_send)
