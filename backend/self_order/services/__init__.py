"""
Self-order services package.

- SessionStore: sessions, cart items and the conditional status transition
- KitchenHandoffService: submit and exactly-once fulfillment order creation
- PaymentOrchestrator: totals, payment creation and gateway callbacks
- SessionExpiryService: expire and cleanup sweeps, force-expire, extend
"""

from .session_service import SessionStore
from .handoff_service import KitchenHandoffService, HandoffResult
from .payment_service import PaymentOrchestrator, build_transaction_id, parse_transaction_id
from .expiry_service import SessionExpiryService

__all__ = [
    'SessionStore',
    'KitchenHandoffService',
    'HandoffResult',
    'PaymentOrchestrator',
    'build_transaction_id',
    'parse_transaction_id',
    'SessionExpiryService',
]
