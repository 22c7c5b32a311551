from datetime import timedelta
from django.conf import settings
from django.db import transaction, DatabaseError
from django.db.models import F
from django.utils import timezone
from typing import List
import logging

from ..exceptions import InvalidState, SessionExpired, Conflict, NotFound
from ..models import SelfOrderSession, SelfOrderItem, SessionStatus
from ..signals import session_expired, send_after_commit
from .session_service import SessionStore

logger = logging.getLogger(__name__)


class SessionExpiryService:
    """
    Deadline handling for self-order sessions: the expire sweep, the cleanup
    sweep, and the manual force-expire and extend operations used by staff.

    Sweeps query candidates first and then transition each one through the
    conditional SessionStore.transition, so a session that was submitted or
    paid in between is left alone.
    """

    @staticmethod
    def find_overdue_session_codes(now=None) -> List[str]:
        now = now or timezone.now()
        return list(
            SelfOrderSession.objects.filter(
                status=SessionStatus.ACTIVE,
                expires_at__lt=now,
            ).values_list("session_code", flat=True)
        )

    @staticmethod
    def expire_session(session_code, now=None) -> SelfOrderSession:
        """
        Expire one overdue active session.

        Raises:
            Conflict: The session is no longer active, or its deadline was extended
        """
        now = now or timezone.now()
        with transaction.atomic():
            session = SessionStore.transition(
                session_code,
                SessionStatus.ACTIVE,
                SessionStatus.EXPIRED,
                only_if={"expires_at__lt": now},
            )
            send_after_commit(session_expired, sender=SelfOrderSession, session_code=session_code, reason="sweep")
        return session

    @staticmethod
    def expire_overdue_sessions(session_codes=None, now=None) -> dict:
        """
        One tick of the expire sweep.

        Returns:
            dict: counts of expired, skipped (lost race) and failed sessions
        """
        now = now or timezone.now()
        if session_codes is None:
            session_codes = SessionExpiryService.find_overdue_session_codes(now)

        summary = {"expired": 0, "skipped": 0, "failed": 0}
        for session_code in session_codes:
            try:
                SessionExpiryService.expire_session(session_code, now=now)
                summary["expired"] += 1
            except (Conflict, NotFound):
                summary["skipped"] += 1
            except DatabaseError as e:
                summary["failed"] += 1
                logger.error(f"Failed to expire session {session_code}: {e}", exc_info=True)

        if summary["expired"]:
            logger.info(f"Expired {summary['expired']} overdue self-order sessions")
        return summary

    @staticmethod
    def find_cleanup_candidates(now=None) -> List:
        now = now or timezone.now()
        retention = timedelta(hours=settings.SELF_ORDER["EXPIRED_RETENTION_HOURS"])
        return list(
            SelfOrderSession.objects.filter(
                status=SessionStatus.EXPIRED,
                expires_at__lt=now - retention,
            ).values_list("id", flat=True)
        )

    @staticmethod
    def cleanup_expired_sessions(now=None) -> dict:
        """
        One tick of the cleanup sweep: hard-delete expired sessions past the
        retention window, cart items first. Payment references go with the session.

        Returns:
            dict: counts of deleted sessions, deleted items and failures
        """
        summary = {"deleted": 0, "items_deleted": 0, "failed": 0}

        for session_id in SessionExpiryService.find_cleanup_candidates(now):
            try:
                with transaction.atomic():
                    items_deleted, _ = SelfOrderItem.objects.filter(
                        session_id=session_id,
                        session__status=SessionStatus.EXPIRED,
                    ).delete()
                    sessions_deleted, _ = SelfOrderSession.objects.filter(
                        id=session_id,
                        status=SessionStatus.EXPIRED,
                    ).delete()
                summary["items_deleted"] += items_deleted
                if sessions_deleted:
                    summary["deleted"] += 1
            except DatabaseError as e:
                summary["failed"] += 1
                logger.error(f"Failed to clean up self-order session {session_id}: {e}", exc_info=True)

        if summary["deleted"]:
            logger.info(
                f"Deleted {summary['deleted']} expired self-order sessions "
                f"({summary['items_deleted']} cart items)"
            )
        return summary

    @staticmethod
    def force_expire(session_code) -> SelfOrderSession:
        """
        Staff override: expire an active or submitted session regardless of its deadline.

        Raises:
            NotFound: Session does not exist
            Conflict: Session is already paid or expired
        """
        with transaction.atomic():
            session = SessionStore.transition(
                session_code,
                [SessionStatus.ACTIVE, SessionStatus.SUBMITTED],
                SessionStatus.EXPIRED,
            )
            send_after_commit(session_expired, sender=SelfOrderSession, session_code=session_code, reason="manual")
        logger.info(f"Session {session_code} force-expired")
        return session

    @staticmethod
    def extend(session_code, minutes=None) -> SelfOrderSession:
        """
        Push an active session's deadline back by `minutes`.

        Raises:
            NotFound: Session does not exist
            SessionExpired: Session is expired or already past its deadline
            InvalidState: Session is submitted or paid, or minutes is out of range
        """
        config = settings.SELF_ORDER
        if minutes is None:
            minutes = config["DEFAULT_EXTEND_MINUTES"]
        if not 1 <= int(minutes) <= config["MAX_EXTEND_MINUTES"]:
            raise InvalidState(f"Extension must be between 1 and {config['MAX_EXTEND_MINUTES']} minutes")

        now = timezone.now()
        updated = SelfOrderSession.objects.filter(
            session_code=session_code,
            status=SessionStatus.ACTIVE,
            expires_at__gte=now,
        ).update(
            expires_at=F("expires_at") + timedelta(minutes=int(minutes)),
            updated_at=now,
        )

        session = SessionStore.get(session_code)
        if not updated:
            if session.status == SessionStatus.EXPIRED or session.is_past_deadline(now):
                raise SessionExpired()
            raise InvalidState(f"Session is {session.status}, only active sessions can be extended")

        logger.info(f"Extended session {session_code} by {minutes} minutes to {session.expires_at.isoformat()}")
        return session
