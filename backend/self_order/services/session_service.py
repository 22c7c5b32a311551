from django.db import transaction, IntegrityError
from django.utils import timezone
import logging

from products.services import CatalogService
from ..exceptions import NotFound, InvalidState, SessionExpired, Conflict
from ..models import SelfOrderSession, SelfOrderItem, SessionStatus, generate_session_code

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Storage and status transitions for self-order sessions and their cart items.

    Every status change goes through transition(), a single conditional UPDATE
    keyed on the expected current status. Callers that lose the race get
    Conflict instead of overwriting a concurrent change.
    """

    # Forward-only lifecycle; paid and expired are terminal.
    VALID_STATUS_TRANSITIONS = {
        SessionStatus.ACTIVE: [SessionStatus.SUBMITTED, SessionStatus.PAID, SessionStatus.EXPIRED],
        SessionStatus.SUBMITTED: [SessionStatus.PAID, SessionStatus.EXPIRED],
        SessionStatus.PAID: [],
        SessionStatus.EXPIRED: [],
    }

    MAX_CODE_RETRIES = 5

    @staticmethod
    def create_session(store_location, table=None, language=None, customer_name="") -> SelfOrderSession:
        """
        Creates an active session expiring one session window after creation.

        Raises:
            NotFound: If the table does not belong to the store location
        """
        if table is not None and table.store_location_id != store_location.id:
            raise NotFound("Table not found at this outlet")

        now = timezone.now()
        session = SelfOrderSession(
            store_location=store_location,
            table=table,
            language=language or "id",
            customer_name=customer_name or "",
            status=SessionStatus.ACTIVE,
            created_at=now,
            expires_at=SelfOrderSession.default_expiry(now),
        )

        for _ in range(SessionStore.MAX_CODE_RETRIES):
            session.session_code = generate_session_code()
            try:
                with transaction.atomic():
                    session.save(force_insert=True)
                break
            except IntegrityError:
                logger.warning(f"Session code {session.session_code} already taken, retrying")
        else:
            raise IntegrityError("Failed to generate a unique session code after multiple retries.")

        logger.info(
            f"Created self-order session {session.session_code} at {store_location.name}"
            f"{f' table {table.name}' if table else ''}, expires {session.expires_at.isoformat()}"
        )
        return session

    @staticmethod
    def get(session_code) -> SelfOrderSession:
        session = (
            SelfOrderSession.objects
            .select_related("store_location", "table", "fulfillment_order")
            .filter(session_code=session_code)
            .first()
        )
        if session is None:
            raise NotFound("Session not found")
        return session

    @staticmethod
    def list_items(session_code):
        session = SessionStore.get(session_code)
        return list(session.items.select_related("product", "variant"))

    @staticmethod
    def add_item(session_code, product_id, variant_id=None, quantity=1, modifiers=None, notes="") -> SelfOrderItem:
        """
        Adds a cart line to an active session that is still inside its window.

        Raises:
            NotFound: Session, product or variant cannot be resolved
            SessionExpired: Session is expired, or past its deadline but not yet swept
            InvalidState: Session was already submitted or paid
        """
        if quantity is None or int(quantity) < 1:
            raise InvalidState("Quantity must be at least 1")

        session = SessionStore.get(session_code)
        SessionStore._ensure_open(session)

        product = CatalogService.get_orderable_product(product_id)
        if product is None:
            raise NotFound("Product not found")

        variant = None
        if variant_id is not None:
            variant = CatalogService.get_orderable_variant(product, variant_id)
            if variant is None:
                raise NotFound("Variant not found")

        with transaction.atomic():
            # Conditional touch: locks the row and re-checks the guard, so a
            # concurrent submit or sweep cannot slip between the check and the insert.
            now = timezone.now()
            still_open = SelfOrderSession.objects.filter(
                pk=session.pk,
                status=SessionStatus.ACTIVE,
                expires_at__gte=now,
            ).update(updated_at=now)
            if not still_open:
                SessionStore._ensure_open(SessionStore.get(session_code), now=now)
                raise Conflict(session_code, [SessionStatus.ACTIVE])

            item = SelfOrderItem.objects.create(
                session=session,
                product=product,
                variant=variant,
                quantity=int(quantity),
                modifiers=modifiers or [],
                notes=notes or "",
            )

        logger.info(
            f"Added {item.quantity} x {product.name} to session {session_code}"
        )
        return item

    @staticmethod
    def transition(session_code, from_statuses, to_status, only_if=None, **updates) -> SelfOrderSession:
        """
        Conditionally move a session to `to_status`.

        Args:
            session_code: Session to transition
            from_statuses: Status or statuses the session must currently be in
            to_status: Target status
            only_if: Extra lookups the row must also match (e.g. a deadline)
            **updates: Further fields written in the same UPDATE

        Raises:
            InvalidState: If no from-status may move to the target status
            NotFound: If the session does not exist
            Conflict: If the session is no longer in an expected status
        """
        if isinstance(from_statuses, str):
            from_statuses = [from_statuses]
        from_statuses = list(from_statuses)

        for from_status in from_statuses:
            if to_status not in SessionStore.VALID_STATUS_TRANSITIONS[from_status]:
                raise InvalidState(f"Invalid status transition from {from_status} to {to_status}")

        now = timezone.now()
        updated = SelfOrderSession.objects.filter(
            session_code=session_code,
            status__in=from_statuses,
            **(only_if or {}),
        ).update(status=to_status, updated_at=now, **updates)

        if not updated:
            if not SelfOrderSession.objects.filter(session_code=session_code).exists():
                raise NotFound("Session not found")
            logger.warning(
                f"Lost transition race for session {session_code}: expected {'|'.join(from_statuses)}, "
                f"wanted {to_status}"
            )
            raise Conflict(session_code, from_statuses)

        logger.info(f"Session {session_code} -> {to_status}")
        return SessionStore.get(session_code)

    @staticmethod
    def claim_order_creation(session_code) -> bool:
        """
        Conditionally set the order_created flag. Exactly one caller per session
        ever gets True; that caller is the one allowed to create the fulfillment order.
        """
        claimed = SelfOrderSession.objects.filter(
            session_code=session_code,
            order_created=False,
        ).update(order_created=True, updated_at=timezone.now())
        return bool(claimed)

    @staticmethod
    def _ensure_open(session, now=None):
        if session.status == SessionStatus.EXPIRED or session.is_past_deadline(now):
            raise SessionExpired()
        if session.status != SessionStatus.ACTIVE:
            raise InvalidState(f"Session is {session.status}, items can only be added while active")
