from dataclasses import dataclass
from typing import Optional
from django.db import transaction
from django.utils import timezone
import logging

from kds.events.publishers import KDSEventPublisher
from orders.models import Order
from orders.services import OrderService
from ..calculators import TotalCalculator
from ..exceptions import InvalidState, SessionExpired, Conflict
from ..models import SelfOrderSession, SessionStatus
from ..signals import session_submitted, send_after_commit
from .session_service import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class HandoffResult:
    session: SelfOrderSession
    order: Optional[Order]
    created: bool


class KitchenHandoffService:
    """
    Turns a session's cart into a kitchen fulfillment order, exactly once.

    Two paths can get there: submit, and a payment success that arrives while
    the session is still active. Both go through create_fulfillment_order, which
    only proceeds for the caller that wins the order_created claim.
    """

    @staticmethod
    def submit(session_code) -> HandoffResult:
        """
        Finalize the cart: active -> submitted, then create the fulfillment order.

        A caller that loses a concurrent submit gets the winner's order back
        instead of a duplicate.

        Raises:
            NotFound: Session does not exist
            InvalidState: The cart is empty, or the session is paid without an order
            SessionExpired: The session was expired before it could be submitted
            Conflict: The session moved on concurrently and has no order to return
        """
        items = SessionStore.list_items(session_code)
        if not items:
            raise InvalidState("Cannot submit empty order")

        with transaction.atomic():
            try:
                session = SessionStore.transition(
                    session_code, SessionStatus.ACTIVE, SessionStatus.SUBMITTED
                )
            except Conflict:
                current = SessionStore.get(session_code)
                if current.fulfillment_order_id:
                    logger.info(
                        f"Session {session_code} already handed off as order "
                        f"{current.fulfillment_order.order_number}"
                    )
                    return HandoffResult(current, current.fulfillment_order, created=False)
                if current.status == SessionStatus.EXPIRED:
                    raise SessionExpired()
                raise

            order = KitchenHandoffService.create_fulfillment_order(session)
            session.refresh_from_db()

        return HandoffResult(session, order, created=True)

    @staticmethod
    def create_fulfillment_order(session) -> Optional[Order]:
        """
        Create the session's fulfillment order if nobody has yet.

        Returns the order this call created, the existing order if another path
        already created one, or None when the cart is empty.
        """
        with transaction.atomic():
            items = list(session.items.select_related("product", "variant"))
            if not items:
                logger.warning(f"Session {session.session_code} has no items, no order created")
                return None

            if not SessionStore.claim_order_creation(session.session_code):
                existing = SessionStore.get(session.session_code).fulfillment_order
                logger.info(
                    f"Order for session {session.session_code} already created"
                    f"{f' ({existing.order_number})' if existing else ''}"
                )
                return existing

            totals = TotalCalculator.for_items(items, session.store_location)
            lines = [
                {
                    "product": item.product,
                    "variant": item.variant,
                    "product_name": item.product.name,
                    "variant_name": item.variant.name if item.variant_id else "",
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "modifiers": item.modifiers,
                    "notes": item.notes,
                }
                for item in items
            ]

            order = OrderService.create_fulfillment_order(
                store_location=session.store_location,
                table=session.table,
                lines=lines,
                source=Order.OrderSource.SELF_ORDER,
                order_type=Order.OrderType.DINE_IN,
                customer_name=session.customer_name,
                totals=totals.as_dict(),
            )

            SelfOrderSession.objects.filter(pk=session.pk).update(
                fulfillment_order=order, updated_at=timezone.now()
            )
            session.fulfillment_order = order
            session.order_created = True

            KDSEventPublisher.order_status_changed(order, previous_status="", new_status=Order.OrderStatus.PENDING)
            send_after_commit(session_submitted, sender=SelfOrderSession, session=session, order=order)

        logger.info(f"Session {session.session_code} handed to kitchen as order {order.order_number}")
        return order
