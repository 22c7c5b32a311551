from abc import ABC, abstractmethod
from datetime import timedelta
from django.conf import settings
import logging

from .calculators import to_whole_units
from .models import PaymentMethod

logger = logging.getLogger(__name__)

# Placeholder CRC; the gateway signs the real payload.
QRIS_CRC_PLACEHOLDER = "6304"


def _tlv(tag, value):
    value = str(value)
    return f"{tag}{len(value):02d}{value}"


def build_qris_payload(transaction_id, amount, merchant_name, merchant_city="Jakarta"):
    """
    EMVCo/QRIS-style merchant-presented payload.

    Only the fields a wallet app needs to display the charge are filled in:
    a reference built from the last 10 characters of the transaction id, the
    amount in whole rupiah, the merchant name and city.
    """
    merchant_account = _tlv("00", "ID.CO.QRIS.WWW") + _tlv("02", f"ID10{transaction_id[-10:]}")
    return "".join([
        _tlv("00", "01"),                 # payload format indicator
        _tlv("01", "12"),                 # dynamic QR, single use
        _tlv("26", merchant_account),
        _tlv("52", "5399"),               # merchant category code
        _tlv("53", "360"),                # IDR
        _tlv("54", str(to_whole_units(amount))),
        _tlv("58", "ID"),
        _tlv("59", merchant_name[:25]),
        _tlv("60", merchant_city[:15]),
        QRIS_CRC_PLACEHOLDER,
    ])


class SelfOrderPaymentStrategy(ABC):
    """
    Interface for self-order payment methods.

    Strategies only describe how the customer completes the payment. They never
    change the session; the session moves to paid through the callback path.
    """

    method = None

    def payment_expiry(self, now):
        """Soft deadline shown to the customer, or None if the method has no timer."""
        minutes = settings.SELF_ORDER["PAYMENT_WINDOW_MINUTES"]
        return now + timedelta(minutes=minutes)

    @abstractmethod
    def initiate(self, reference, session, grand_total) -> dict:
        """Build the method-specific response for a freshly recorded PaymentReference."""
        pass


class CashPaymentStrategy(SelfOrderPaymentStrategy):
    """Pay at the counter: staff confirm the cash payment through the callback."""

    method = PaymentMethod.CASH

    def payment_expiry(self, now):
        return None

    def initiate(self, reference, session, grand_total):
        logger.info(f"Cash payment created for session {session.session_code}: pay at counter")
        return {
            "success": True,
            "transactionId": reference.transaction_id,
            "paymentMethod": self.method.value,
            "message": "Please proceed to the counter to complete your cash payment.",
        }


class QrisPaymentStrategy(SelfOrderPaymentStrategy):
    """QR-present payment: the customer scans a code with any QRIS wallet."""

    method = PaymentMethod.QRIS

    def initiate(self, reference, session, grand_total):
        merchant_name = session.store_location.get_merchant_name()
        base_url = settings.SELF_ORDER["QRIS_BASE_URL"].rstrip("/")
        qr_code_url = f"{base_url}/qr/{reference.transaction_id}"
        qr_code_data = build_qris_payload(reference.transaction_id, grand_total, merchant_name)

        logger.info(
            f"QRIS payment created for session {session.session_code}: "
            f"{reference.transaction_id}, amount: {to_whole_units(grand_total)}"
        )
        window = settings.SELF_ORDER["PAYMENT_WINDOW_MINUTES"]
        return {
            "success": True,
            "transactionId": reference.transaction_id,
            "paymentMethod": self.method.value,
            "qrCode": qr_code_url,
            "qrCodeData": qr_code_data,
            "amount": int(to_whole_units(grand_total)),
            "merchantName": merchant_name,
            "expiresAt": reference.expires_at,
            "message": f"Scan QR code to complete payment. Expires in {window} minutes.",
        }


class EwalletRedirectStrategy(SelfOrderPaymentStrategy):
    """E-wallet payment completed in the wallet's own app or web page."""

    def __init__(self, method):
        self.method = PaymentMethod(method)

    def initiate(self, reference, session, grand_total):
        base_url = settings.SELF_ORDER["EWALLET_BASE_URL"].rstrip("/")
        payment_url = f"{base_url}/{self.method.value}/{reference.transaction_id}"

        logger.info(
            f"E-wallet payment ({self.method.value}) created for session "
            f"{session.session_code}: {reference.transaction_id}"
        )
        window = settings.SELF_ORDER["PAYMENT_WINDOW_MINUTES"]
        return {
            "success": True,
            "transactionId": reference.transaction_id,
            "paymentMethod": self.method.value,
            "paymentUrl": payment_url,
            "expiresAt": reference.expires_at,
            "message": f"Complete payment via {self.method.label}. Expires in {window} minutes.",
        }
