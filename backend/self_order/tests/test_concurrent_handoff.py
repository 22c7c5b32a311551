"""
Concurrent Handoff Tests

Races real threads against the exactly-once guarantees:
- Double submit from several devices at the same table
- Gateway retrying a success callback while the first is still in flight
- Payment success arriving while the customer taps submit

These tests use threading to simulate real-world concurrent access patterns.
On SQLite a losing thread can fail with "database table is locked"; that is
a storage-level rejection and counts as a lost race, never as a second order.
A submit that loses to a payment still being committed gets Conflict, also a
lost race.
"""
import pytest
from decimal import Decimal
from threading import Thread, Barrier
from django.db import OperationalError

from orders.models import Order
from self_order.exceptions import Conflict
from self_order.models import PaymentReference, SessionStatus
from self_order.services import (
    KitchenHandoffService,
    PaymentOrchestrator,
    build_transaction_id,
)


def run_concurrently(*targets):
    """
    Start one thread per target behind a barrier and wait for all of them.

    Returns:
        tuple: (results, errors) collected from the targets
    """
    results = []
    errors = []
    barrier = Barrier(len(targets))

    def run(target, thread_id):
        from django.db import connection
        try:
            # Reconnect to database in thread
            connection.close()
            connection.connect()

            # Wait for all threads to be ready
            barrier.wait()

            results.append((thread_id, target()))
        except OperationalError as e:
            errors.append(f"thread_{thread_id}_locked: {e}")
        except Conflict as e:
            errors.append(f"thread_{thread_id}_lost_race: {e.message}")
        except Exception as e:
            errors.append(f"thread_{thread_id}_unexpected: {e!r}")
        finally:
            connection.close()

    threads = [Thread(target=run, args=(target, i)) for i, target in enumerate(targets)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, errors


def unexpected(errors):
    return [error for error in errors if "_unexpected" in error]


@pytest.mark.django_db(transaction=True)
class TestConcurrentSubmit:

    def test_concurrent_submits_create_one_order(self, session_with_items):
        """
        CRITICAL: Verify that simultaneous submits hand the cart to the kitchen once.

        Scenario:
        - Session has 2 items
        - 4 devices submit at the same moment
        - Expected: exactly 1 fulfillment order; every successful submit
          reports that same order
        """
        code = session_with_items.session_code

        results, errors = run_concurrently(*[lambda: KitchenHandoffService.submit(code)] * 4)

        assert not unexpected(errors), f"Unexpected errors: {errors}"
        assert results, f"No submit succeeded. Errors: {errors}"
        assert Order.objects.count() == 1

        order = Order.objects.get()
        assert {result.order.id for _, result in results} == {order.id}
        assert sum(1 for _, result in results if result.created) == 1

        session_with_items.refresh_from_db()
        assert session_with_items.status == SessionStatus.SUBMITTED
        assert session_with_items.fulfillment_order_id == order.id


@pytest.mark.django_db(transaction=True)
class TestConcurrentCallbacks:

    def test_duplicate_success_callbacks_create_no_extra_order(self, submitted_session):
        """
        CRITICAL: Verify that a gateway retrying a success callback concurrently
        does not double-process the payment.

        Scenario:
        - Session submitted (1 order), QRIS payment pending
        - 4 copies of the success callback arrive simultaneously
        - Expected: session paid, still exactly 1 order
        """
        code = submitted_session.session_code
        txn = PaymentOrchestrator.create_payment(code, "qris", 23000)["transactionId"]

        results, errors = run_concurrently(
            *[lambda: PaymentOrchestrator.handle_callback(txn, "success")] * 4
        )

        assert not unexpected(errors), f"Unexpected errors: {errors}"
        assert results, f"No callback was applied. Errors: {errors}"
        assert all(applied is True for _, applied in results)

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.PAID
        assert Order.objects.count() == 1
        assert PaymentReference.objects.get(transaction_id=txn).status == PaymentReference.Status.SUCCESS

    def test_success_racing_submit_creates_one_order(self, session_with_items):
        """
        CRITICAL: Verify the two handoff paths cannot both create an order.

        Scenario:
        - Active session with items and a pending payment
        - Success callbacks and submits arrive simultaneously
        - Expected: exactly 1 fulfillment order, linked to the session
        """
        code = session_with_items.session_code
        reference = PaymentReference.objects.create(
            session=session_with_items,
            transaction_id=build_transaction_id(code),
            method="qris",
            amount=Decimal("23000"),
        )

        results, errors = run_concurrently(
            lambda: PaymentOrchestrator.handle_callback(reference.transaction_id, "success"),
            lambda: KitchenHandoffService.submit(code),
            lambda: PaymentOrchestrator.handle_callback(reference.transaction_id, "success"),
            lambda: KitchenHandoffService.submit(code),
        )

        assert not unexpected(errors), f"Unexpected errors: {errors}"
        assert results, f"Nothing succeeded. Errors: {errors}"
        assert Order.objects.count() == 1

        session_with_items.refresh_from_db()
        assert session_with_items.order_created is True
        assert session_with_items.fulfillment_order_id == Order.objects.get().id
