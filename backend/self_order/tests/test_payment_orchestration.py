"""
Payment Orchestration Tests

This module tests how payments are started and how gateway callbacks move a
session to paid:

1. Payment creation: state guards, amount tolerance, per-method responses
2. Callback handling: malformed input, idempotence, failure and pending
3. Payment before submission: exactly-once fulfillment order
4. Status reporting

Priority: CRITICAL - Money and kitchen orders depend on this
"""
import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from django.utils import timezone

from orders.models import Order
from self_order.exceptions import InvalidState, SessionExpired, AmountMismatch, NotFound, MalformedCallback
from self_order.factories import SelfOrderPaymentStrategyFactory
from self_order.models import SelfOrderSession, PaymentReference, SessionStatus
from self_order.services import (
    PaymentOrchestrator,
    KitchenHandoffService,
    SessionStore,
    build_transaction_id,
    parse_transaction_id,
)
from self_order.signals import session_paid
from self_order.strategies import (
    CashPaymentStrategy,
    QrisPaymentStrategy,
    EwalletRedirectStrategy,
    build_qris_payload,
)


def self_order_count():
    return Order.objects.filter(source=Order.OrderSource.SELF_ORDER).count()


# ============================================================================
# TRANSACTION IDS
# ============================================================================

class TestTransactionIds:
    """Transaction ids embed the session code so callbacks can find the session."""

    def test_build_and_parse(self):
        txn = build_transaction_id("SO-LQ2X8K1B-7Q4Z", timestamp_ms=1700000000000)

        assert txn == "SO-SO-LQ2X8K1B-7Q4Z-1700000000000"
        assert parse_transaction_id(txn) == "SO-LQ2X8K1B-7Q4Z"

    @pytest.mark.parametrize("txn", ["", None, "garbage", "SO-ABC", "SO-ABC-notanumber", "XX-SO-A-B-123"])
    def test_parse_rejects_malformed_ids(self, txn):
        with pytest.raises(MalformedCallback):
            parse_transaction_id(txn)


# ============================================================================
# STRATEGIES
# ============================================================================

class TestPaymentStrategyFactory:

    def test_cash(self):
        assert isinstance(SelfOrderPaymentStrategyFactory.get_strategy("cash"), CashPaymentStrategy)

    def test_qris(self):
        assert isinstance(SelfOrderPaymentStrategyFactory.get_strategy("qris"), QrisPaymentStrategy)

    @pytest.mark.parametrize("method", ["gopay", "ovo", "dana", "shopeepay"])
    def test_ewallets(self, method):
        strategy = SelfOrderPaymentStrategyFactory.get_strategy(method)

        assert isinstance(strategy, EwalletRedirectStrategy)
        assert strategy.method == method

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            SelfOrderPaymentStrategyFactory.get_strategy("bitcoin")


class TestQrisPayload:

    def test_payload_carries_amount_and_merchant(self):
        payload = build_qris_payload("SO-SO-ABC-1700000000000", Decimal("23000.00"), "Kopi Kemang")

        assert payload.startswith("000201")
        assert "540523000" in payload
        assert "5911Kopi Kemang" in payload
        assert "5303360" in payload
        assert "5802ID" in payload

    def test_amount_is_rounded_to_whole_units(self):
        payload = build_qris_payload("SO-SO-ABC-1700000000000", Decimal("366.3"), "Kopi Kemang")
        assert "5403366" in payload


# ============================================================================
# PAYMENT CREATION
# ============================================================================

@pytest.mark.django_db
class TestCreatePayment:
    """Test payment creation guards and per-method responses."""

    def test_cash_payment_records_pending_reference(self, submitted_session):
        """
        Scenario:
        - Submitted session with grand total 23,000
        - Customer chooses cash
        Expected:
        - Pending reference recorded, session still submitted
        """
        code = submitted_session.session_code

        result = PaymentOrchestrator.create_payment(code, "cash", Decimal("23000"))

        assert result["success"] is True
        assert result["paymentMethod"] == "cash"
        assert parse_transaction_id(result["transactionId"]) == code

        reference = PaymentReference.objects.get(transaction_id=result["transactionId"])
        assert reference.status == PaymentReference.Status.PENDING
        assert reference.amount == Decimal("23000")
        assert reference.expires_at is None

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.SUBMITTED

    def test_qris_payment_response(self, submitted_session):
        before = timezone.now()

        result = PaymentOrchestrator.create_payment(submitted_session.session_code, "qris", 23000)

        assert result["qrCode"].endswith(f"/qr/{result['transactionId']}")
        assert "540523000" in result["qrCodeData"]
        assert result["amount"] == 23000
        assert result["merchantName"] == "Kopi Kemang"
        assert before + timedelta(minutes=15) <= result["expiresAt"] <= timezone.now() + timedelta(minutes=15)

    def test_ewallet_payment_response(self, submitted_session, settings):
        result = PaymentOrchestrator.create_payment(submitted_session.session_code, "gopay", 23000)

        base_url = settings.SELF_ORDER["EWALLET_BASE_URL"].rstrip("/")
        assert result["paymentUrl"] == f"{base_url}/gopay/{result['transactionId']}"
        assert result["paymentMethod"] == "gopay"
        assert result["expiresAt"] is not None

    @pytest.mark.parametrize("amount", [Decimal("22999"), Decimal("23001"), Decimal("23000.40")])
    def test_amount_within_one_unit_is_accepted(self, submitted_session, amount):
        result = PaymentOrchestrator.create_payment(submitted_session.session_code, "cash", amount)
        assert result["success"] is True

    @pytest.mark.parametrize("amount", [Decimal("22000"), Decimal("22998"), Decimal("23002")])
    def test_amount_outside_tolerance_is_rejected(self, submitted_session, amount):
        """
        CRITICAL: A tendered amount more than one unit away from the grand
        total is rejected and nothing is recorded.
        """
        with pytest.raises(AmountMismatch) as exc_info:
            PaymentOrchestrator.create_payment(submitted_session.session_code, "cash", amount)

        assert exc_info.value.expected == Decimal("23000")
        assert PaymentReference.objects.count() == 0

    def test_active_session_cannot_pay(self, session_with_items):
        with pytest.raises(InvalidState) as exc_info:
            PaymentOrchestrator.create_payment(session_with_items.session_code, "cash", 23000)

        assert not isinstance(exc_info.value, SessionExpired)

    def test_paid_session_cannot_pay_again(self, make_session):
        session = make_session(status=SessionStatus.PAID)

        with pytest.raises(InvalidState):
            PaymentOrchestrator.create_payment(session.session_code, "cash", 0)

    def test_overdue_submitted_session_cannot_pay(self, submitted_session):
        SelfOrderSession.objects.filter(pk=submitted_session.pk).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        with pytest.raises(SessionExpired):
            PaymentOrchestrator.create_payment(submitted_session.session_code, "cash", 23000)

    def test_unknown_session(self):
        with pytest.raises(NotFound):
            PaymentOrchestrator.create_payment("SO-NOPE-0000", "cash", 23000)

    def test_unknown_method(self, submitted_session):
        with pytest.raises(ValueError):
            PaymentOrchestrator.create_payment(submitted_session.session_code, "bitcoin", 23000)

    def test_repeated_payments_get_distinct_transaction_ids(self, submitted_session):
        code = submitted_session.session_code

        first = PaymentOrchestrator.create_payment(code, "qris", 23000)
        second = PaymentOrchestrator.create_payment(code, "qris", 23000)

        assert first["transactionId"] != second["transactionId"]
        assert PaymentReference.objects.filter(session=submitted_session).count() == 2


# ============================================================================
# CALLBACKS
# ============================================================================

@pytest.mark.django_db
class TestHandleCallback:
    """Test gateway callback handling."""

    def test_success_marks_session_paid(self, submitted_session, django_capture_on_commit_callbacks):
        code = submitted_session.session_code
        txn = PaymentOrchestrator.create_payment(code, "qris", 23000)["transactionId"]
        received = []

        def on_paid(sender, session, transaction_id, **kwargs):
            received.append((session.session_code, transaction_id))

        session_paid.connect(on_paid)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                assert PaymentOrchestrator.handle_callback(txn, "success") is True
        finally:
            session_paid.disconnect(on_paid)

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.PAID
        assert PaymentReference.objects.get(transaction_id=txn).status == PaymentReference.Status.SUCCESS
        assert received == [(code, txn)]

    def test_duplicate_success_is_idempotent(self, submitted_session):
        """
        CRITICAL: Gateways retry webhooks. A replayed success must not create
        a second order or fail.
        """
        txn = PaymentOrchestrator.create_payment(submitted_session.session_code, "cash", 23000)["transactionId"]

        assert PaymentOrchestrator.handle_callback(txn, "success") is True
        assert PaymentOrchestrator.handle_callback(txn, "success") is True

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.PAID
        assert self_order_count() == 1

    @pytest.mark.parametrize("txn", ["garbage", "", None, "SO-NOPE"])
    def test_malformed_transaction_id_is_ignored(self, submitted_session, txn):
        assert PaymentOrchestrator.handle_callback(txn, "success") is False

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.SUBMITTED

    def test_unknown_transaction_is_ignored(self, submitted_session):
        txn = build_transaction_id(submitted_session.session_code, timestamp_ms=1)

        assert PaymentOrchestrator.handle_callback(txn, "success") is False

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.SUBMITTED

    def test_transaction_of_unknown_session_is_ignored(self):
        assert PaymentOrchestrator.handle_callback("SO-SO-NOPE-0000-1700000000000", "success") is False

    def test_unknown_status_is_ignored(self, submitted_session):
        txn = PaymentOrchestrator.create_payment(submitted_session.session_code, "cash", 23000)["transactionId"]

        assert PaymentOrchestrator.handle_callback(txn, "refunded") is False
        assert PaymentReference.objects.get(transaction_id=txn).status == PaymentReference.Status.PENDING

    @pytest.mark.parametrize("status", ["failed", "failure", "FAILED"])
    def test_failure_keeps_session_payable(self, submitted_session, status):
        code = submitted_session.session_code
        txn = PaymentOrchestrator.create_payment(code, "qris", 23000)["transactionId"]

        assert PaymentOrchestrator.handle_callback(txn, status) is True

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.SUBMITTED
        assert PaymentReference.objects.get(transaction_id=txn).status == PaymentReference.Status.FAILED

        # The customer can retry with another method
        retry = PaymentOrchestrator.create_payment(code, "cash", 23000)
        assert retry["success"] is True

    def test_pending_changes_nothing(self, submitted_session):
        txn = PaymentOrchestrator.create_payment(submitted_session.session_code, "qris", 23000)["transactionId"]

        assert PaymentOrchestrator.handle_callback(txn, "pending") is True

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.SUBMITTED
        assert PaymentReference.objects.get(transaction_id=txn).status == PaymentReference.Status.PENDING

    def test_late_failure_does_not_downgrade_success(self, submitted_session):
        txn = PaymentOrchestrator.create_payment(submitted_session.session_code, "qris", 23000)["transactionId"]
        PaymentOrchestrator.handle_callback(txn, "success")

        PaymentOrchestrator.handle_callback(txn, "failed")

        assert PaymentReference.objects.get(transaction_id=txn).status == PaymentReference.Status.SUCCESS
        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.PAID

    def test_success_for_expired_session_leaves_it_expired(self, submitted_session):
        """
        Scenario:
        - Payment started, then staff force-expire the session
        - Gateway later reports success
        Expected:
        - Callback is acknowledged, session stays expired
        """
        code = submitted_session.session_code
        txn = PaymentOrchestrator.create_payment(code, "qris", 23000)["transactionId"]
        SessionStore.transition(code, SessionStatus.SUBMITTED, SessionStatus.EXPIRED)

        assert PaymentOrchestrator.handle_callback(txn, "success") is True

        submitted_session.refresh_from_db()
        assert submitted_session.status == SessionStatus.EXPIRED

    def test_success_for_session_removed_mid_callback_is_acknowledged(self, submitted_session):
        """
        Scenario:
        - Payment started, then cleanup removes the session while the
          success callback is being applied
        Expected:
        - Callback is acknowledged without raising, no order is created
        """
        code = submitted_session.session_code
        txn = PaymentOrchestrator.create_payment(code, "qris", 23000)["transactionId"]
        orders_before = Order.objects.count()

        with patch.object(SessionStore, "transition", side_effect=NotFound("Session not found")):
            assert PaymentOrchestrator.handle_callback(txn, "success") is True

        assert Order.objects.count() == orders_before
        assert PaymentReference.objects.get(transaction_id=txn).status == PaymentReference.Status.SUCCESS


@pytest.mark.django_db
class TestPaymentBeforeSubmission:
    """
    CRITICAL: A success callback can arrive while the session is still active.
    The cart must reach the kitchen exactly once.
    """

    def _pending_reference(self, session):
        return PaymentReference.objects.create(
            session=session,
            transaction_id=build_transaction_id(session.session_code),
            method="qris",
            amount=Decimal("23000"),
        )

    def test_success_on_active_session_creates_order(self, session_with_items):
        reference = self._pending_reference(session_with_items)

        assert PaymentOrchestrator.handle_callback(reference.transaction_id, "success") is True

        session_with_items.refresh_from_db()
        assert session_with_items.status == SessionStatus.PAID
        assert session_with_items.order_created is True
        assert session_with_items.fulfillment_order is not None
        assert session_with_items.fulfillment_order.grand_total == Decimal("23000")
        assert self_order_count() == 1

    def test_submit_after_payment_returns_existing_order(self, session_with_items):
        reference = self._pending_reference(session_with_items)
        PaymentOrchestrator.handle_callback(reference.transaction_id, "success")

        result = KitchenHandoffService.submit(session_with_items.session_code)

        session_with_items.refresh_from_db()
        assert result.created is False
        assert result.order == session_with_items.fulfillment_order
        assert result.session.status == SessionStatus.PAID
        assert self_order_count() == 1

    def test_success_on_empty_active_session_creates_no_order(self, active_session):
        reference = self._pending_reference(active_session)

        assert PaymentOrchestrator.handle_callback(reference.transaction_id, "success") is True

        active_session.refresh_from_db()
        assert active_session.status == SessionStatus.PAID
        assert active_session.order_created is False
        assert self_order_count() == 0


# ============================================================================
# STATUS
# ============================================================================

@pytest.mark.django_db
class TestPaymentStatus:

    def test_status_without_payment(self, session_with_items):
        status = PaymentOrchestrator.get_status(session_with_items.session_code)

        assert status["sessionStatus"] == SessionStatus.ACTIVE
        assert status["isPaid"] is False
        assert status["paymentReference"] is None
        assert status["paymentExpired"] is None
        assert status["orderNumber"] is None

    def test_status_reports_latest_payment(self, submitted_session):
        code = submitted_session.session_code
        earlier = PaymentOrchestrator.create_payment(code, "cash", 23000)
        PaymentReference.objects.filter(transaction_id=earlier["transactionId"]).update(
            created_at=timezone.now() - timedelta(minutes=5)
        )
        latest = PaymentOrchestrator.create_payment(code, "qris", 23000)

        status = PaymentOrchestrator.get_status(code)

        assert status["sessionStatus"] == SessionStatus.SUBMITTED
        assert status["paymentReference"] == latest["transactionId"]
        assert status["paymentMethod"] == "qris"
        assert status["paymentStatus"] == PaymentReference.Status.PENDING
        assert status["paymentExpired"] is False
        assert status["orderNumber"] == submitted_session.fulfillment_order.order_number

    def test_payment_window_expiry_is_reported(self, submitted_session):
        code = submitted_session.session_code
        txn = PaymentOrchestrator.create_payment(code, "qris", 23000)["transactionId"]
        PaymentReference.objects.filter(transaction_id=txn).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        status = PaymentOrchestrator.get_status(code)

        assert status["paymentExpired"] is True
        # The payment window is informational, the session is still payable
        assert status["sessionStatus"] == SessionStatus.SUBMITTED

    def test_paid_status(self, submitted_session):
        code = submitted_session.session_code
        txn = PaymentOrchestrator.create_payment(code, "cash", 23000)["transactionId"]
        PaymentOrchestrator.handle_callback(txn, "success")

        status = PaymentOrchestrator.get_status(code)

        assert status["isPaid"] is True
        assert status["paymentStatus"] == PaymentReference.Status.SUCCESS


# ============================================================================
# END TO END
# ============================================================================

@pytest.mark.django_db
def test_reference_scenario(store_location, dining_table, nasi_goreng):
    """
    Create session, add 2 x 10,000, submit, pay by QRIS, callback success:
    one order with grand total 23,000 and a paid session.
    """
    session = SessionStore.create_session(store_location, table=dining_table)
    code = session.session_code
    SessionStore.add_item(code, nasi_goreng.id)
    SessionStore.add_item(code, nasi_goreng.id)

    result = KitchenHandoffService.submit(code)
    assert result.created is True

    payment = PaymentOrchestrator.create_payment(code, "qris", 23000)
    assert PaymentOrchestrator.handle_callback(payment["transactionId"], "success") is True

    session.refresh_from_db()
    assert session.status == SessionStatus.PAID
    assert session.fulfillment_order.grand_total == Decimal("23000")
    assert self_order_count() == 1
