from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone
import logging
import re
import time

from ..calculators import TotalCalculator, CartTotals, to_whole_units, within_tolerance
from ..exceptions import InvalidState, SessionExpired, Conflict, NotFound, AmountMismatch, MalformedCallback
from ..factories import SelfOrderPaymentStrategyFactory
from ..models import SelfOrderSession, PaymentReference, SessionStatus
from ..signals import session_paid, send_after_commit
from .handoff_service import KitchenHandoffService
from .session_service import SessionStore

logger = logging.getLogger(__name__)

TRANSACTION_PREFIX = "SO"
_TRANSACTION_ID_RE = re.compile(r"^SO-(.+)-(\d+)$")

# Gateways are not consistent about the spelling of a failed payment.
CALLBACK_STATUSES = {
    "success": PaymentReference.Status.SUCCESS,
    "failed": PaymentReference.Status.FAILED,
    "failure": PaymentReference.Status.FAILED,
    "pending": PaymentReference.Status.PENDING,
}


def build_transaction_id(session_code, timestamp_ms=None):
    """'SO-<session code>-<ms timestamp>'; parse_transaction_id reverses it."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{TRANSACTION_PREFIX}-{session_code}-{timestamp_ms}"


def parse_transaction_id(transaction_id):
    """
    Recover the session code from a transaction id.

    Raises:
        MalformedCallback: If the id does not follow the transaction id format
    """
    match = _TRANSACTION_ID_RE.match(transaction_id or "")
    if not match:
        raise MalformedCallback(transaction_id)
    return match.group(1)


class PaymentOrchestrator:
    """
    Payment funnel for self-order sessions.

    create_payment records a pending PaymentReference and hands back what the
    customer needs to pay. Only handle_callback ever changes session status.
    """

    MAX_TRANSACTION_ID_RETRIES = 5

    @staticmethod
    def calculate_total(session_code) -> CartTotals:
        session = SessionStore.get(session_code)
        items = session.items.select_related("product", "variant")
        return TotalCalculator.for_items(items, session.store_location)

    @staticmethod
    def create_payment(session_code, method, amount, customer_email="", customer_phone="") -> dict:
        """
        Validate a payment request against the current total and dispatch it.

        Raises:
            NotFound: Session does not exist
            InvalidState: Session is not submitted
            SessionExpired: Session is expired or past its deadline
            AmountMismatch: Amount is outside the tolerance of the grand total
            ValueError: Unknown payment method
        """
        session = SessionStore.get(session_code)
        now = timezone.now()

        if session.status == SessionStatus.EXPIRED or session.is_past_deadline(now):
            raise SessionExpired()
        if session.status != SessionStatus.SUBMITTED:
            raise InvalidState("Session must be submitted before payment")

        strategy = SelfOrderPaymentStrategyFactory.get_strategy(method)

        totals = PaymentOrchestrator.calculate_total(session_code)
        tolerance = settings.SELF_ORDER["AMOUNT_TOLERANCE"]
        if not within_tolerance(totals.grand_total, amount, tolerance):
            logger.warning(
                f"Amount mismatch for session {session_code}: "
                f"expected {to_whole_units(totals.grand_total)}, got {amount}"
            )
            raise AmountMismatch(expected=to_whole_units(totals.grand_total), received=amount)

        reference = PaymentOrchestrator._record_reference(
            session,
            method=method,
            amount=totals.grand_total,
            customer_email=customer_email or "",
            customer_phone=customer_phone or "",
            expires_at=strategy.payment_expiry(now),
        )
        return strategy.initiate(reference, session, totals.grand_total)

    @staticmethod
    def _record_reference(session, **fields) -> PaymentReference:
        timestamp_ms = int(time.time() * 1000)
        for attempt in range(PaymentOrchestrator.MAX_TRANSACTION_ID_RETRIES):
            transaction_id = build_transaction_id(session.session_code, timestamp_ms + attempt)
            try:
                with transaction.atomic():
                    reference = PaymentReference.objects.create(
                        session=session,
                        transaction_id=transaction_id,
                        status=PaymentReference.Status.PENDING,
                        **fields,
                    )
                logger.info(
                    f"Recorded {reference.method} payment {transaction_id} for session {session.session_code}"
                )
                return reference
            except IntegrityError:
                logger.warning(f"Transaction id {transaction_id} already used, retrying")
        raise IntegrityError("Failed to generate a unique transaction id after multiple retries.")

    @staticmethod
    def handle_callback(transaction_id, status) -> bool:
        """
        Apply a gateway callback. Never raises for bad input: unparseable ids,
        unknown references and unknown statuses are logged and ignored, because
        webhook senders retry on error responses.

        Returns:
            bool: True if the callback matched a payment reference
        """
        try:
            session_code = parse_transaction_id(transaction_id)
        except MalformedCallback as e:
            logger.warning(f"Ignoring payment callback: {e.message}")
            return False

        new_status = CALLBACK_STATUSES.get(str(status).lower())
        if new_status is None:
            logger.warning(f"Ignoring payment callback {transaction_id} with unknown status {status!r}")
            return False

        with transaction.atomic():
            reference = (
                PaymentReference.objects
                .filter(transaction_id=transaction_id, session__session_code=session_code)
                .first()
            )
            if reference is None:
                logger.warning(f"Ignoring payment callback for unknown transaction {transaction_id}")
                return False

            # A settled success is never downgraded by a late or replayed callback.
            PaymentReference.objects.filter(pk=reference.pk).exclude(
                status=PaymentReference.Status.SUCCESS
            ).update(status=new_status, updated_at=timezone.now())

            if new_status == PaymentReference.Status.SUCCESS:
                PaymentOrchestrator._mark_paid(session_code, transaction_id)
            elif new_status == PaymentReference.Status.FAILED:
                # Session keeps its status so the customer can retry.
                logger.info(f"Payment failed for session {session_code} ({transaction_id})")
            else:
                logger.info(f"Payment {transaction_id} still pending for session {session_code}")

        return True

    @staticmethod
    def _mark_paid(session_code, transaction_id):
        try:
            session = SessionStore.transition(
                session_code,
                [SessionStatus.ACTIVE, SessionStatus.SUBMITTED],
                SessionStatus.PAID,
            )
        except NotFound:
            logger.warning(f"Payment {transaction_id} succeeded but session {session_code} no longer exists")
            return
        except Conflict:
            current = SelfOrderSession.objects.filter(session_code=session_code).first()
            if current is None:
                logger.warning(f"Payment {transaction_id} succeeded but session {session_code} no longer exists")
            elif current.status == SessionStatus.PAID:
                logger.info(f"Session {session_code} already paid, duplicate callback {transaction_id}")
            else:
                logger.warning(
                    f"Payment {transaction_id} succeeded but session {session_code} is {current.status}"
                )
            return

        logger.info(f"Session {session_code} marked as paid via callback {transaction_id}")

        if not session.order_created:
            # Payment arrived before submission: hand off now.
            KitchenHandoffService.create_fulfillment_order(session)

        send_after_commit(session_paid, sender=SelfOrderSession, session=session, transaction_id=transaction_id)

    @staticmethod
    def get_status(session_code) -> dict:
        session = SessionStore.get(session_code)
        reference = session.payment_references.order_by("-created_at", "-id").first()

        return {
            "sessionStatus": session.status,
            "isPaid": session.is_paid,
            "paymentReference": reference.transaction_id if reference else None,
            "paymentMethod": reference.method if reference else None,
            "paymentStatus": reference.status if reference else None,
            "paymentCreatedAt": reference.created_at if reference else None,
            "paymentExpiresAt": reference.expires_at if reference else None,
            "paymentExpired": reference.is_expired() if reference else None,
            "orderNumber": session.fulfillment_order.order_number if session.fulfillment_order_id else None,
            "lastUpdated": session.updated_at,
        }
