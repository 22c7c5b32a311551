from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_sessions():
    """
    Mark ACTIVE self-order sessions as EXPIRED once expires_at < now.

    Runs every few minutes via Celery Beat (SELF_ORDER['EXPIRE_SWEEP_SECONDS']).
    Each candidate is expired with a conditional update, so sessions submitted
    or paid after the candidate query are skipped rather than overwritten.
    A failure on one session is logged and the sweep moves on.

    Returns:
        dict: Sweep summary with counts of expired, skipped and failed sessions
    """
    from .services import SessionExpiryService

    try:
        summary = SessionExpiryService.expire_overdue_sessions()
    except Exception as e:
        logger.error(f"Error expiring stale self-order sessions: {e}", exc_info=True)
        raise

    summary = {"status": "success", **summary}
    if summary["expired"] or summary["skipped"] or summary["failed"]:
        logger.info(f"Expire sweep finished: {summary}")
    else:
        logger.info("No stale self-order sessions to expire")
    return summary


@shared_task
def cleanup_expired_sessions():
    """
    Hard-delete EXPIRED self-order sessions older than the retention window.

    Runs hourly via Celery Beat (SELF_ORDER['CLEANUP_SWEEP_SECONDS']).
    Cart items are deleted first, then the session and its payment references.

    Returns:
        dict: Sweep summary with counts of deleted sessions, items and failures
    """
    from .services import SessionExpiryService

    try:
        summary = SessionExpiryService.cleanup_expired_sessions()
    except Exception as e:
        logger.error(f"Error cleaning up expired self-order sessions: {e}", exc_info=True)
        raise

    summary = {"status": "success", **summary}
    if summary["deleted"] or summary["failed"]:
        logger.info(f"Cleanup sweep finished: {summary}")
    else:
        logger.info("No expired self-order sessions to clean up")
    return summary
