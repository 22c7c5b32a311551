from .models import PaymentMethod, EWALLET_METHODS
from .strategies import (
    SelfOrderPaymentStrategy,
    CashPaymentStrategy,
    QrisPaymentStrategy,
    EwalletRedirectStrategy,
)


class SelfOrderPaymentStrategyFactory:
    """
    A factory for creating self-order payment strategy instances.
    """

    @staticmethod
    def get_strategy(method: str) -> SelfOrderPaymentStrategy:
        """
        Returns the strategy for a payment method string.

        Raises:
            ValueError: If the method is not offered for self-ordering
        """
        if method == PaymentMethod.CASH:
            return CashPaymentStrategy()
        elif method == PaymentMethod.QRIS:
            return QrisPaymentStrategy()
        elif method in EWALLET_METHODS:
            return EwalletRedirectStrategy(method)
        else:
            raise ValueError(f"Unknown payment method: {method}")
