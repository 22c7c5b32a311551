"""
Custom exceptions for self-order sessions and payment orchestration.

Every error carries an HTTP status and a stable machine-readable code; the
project exception handler renders them as structured error responses.
"""


class SelfOrderError(Exception):
    """Base exception for self-order errors."""

    status_code = 400
    code = "SELF_ORDER_ERROR"
    default_message = "Self-order request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(SelfOrderError):
    """Raised when a session, product or variant cannot be resolved."""

    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class InvalidState(SelfOrderError):
    """Raised when the session is not in the status an operation requires."""

    status_code = 400
    code = "INVALID_STATE"
    default_message = "Session is not in a valid state for this operation"


class SessionExpired(InvalidState):
    """Raised when the session deadline has passed, swept or not."""

    status_code = 410
    code = "SESSION_EXPIRED"
    default_message = "Session has expired"


class Conflict(SelfOrderError):
    """Raised when a conditional status transition lost a race."""

    status_code = 409
    code = "CONFLICT"
    default_message = "Session was modified concurrently"

    def __init__(self, session_code=None, expected=None, message=None):
        self.session_code = session_code
        self.expected = tuple(expected or ())
        if message is None and session_code:
            expected_info = "|".join(self.expected) or "?"
            message = f"Session {session_code} is no longer {expected_info}"
        super().__init__(message)


class AmountMismatch(SelfOrderError):
    """Raised when a tendered amount is outside the tolerance of the computed total."""

    status_code = 400
    code = "AMOUNT_MISMATCH"

    def __init__(self, expected, received, message=None):
        self.expected = expected
        self.received = received
        if message is None:
            message = f"Payment amount {received} does not match order total {expected}"
        super().__init__(message)


class MalformedCallback(SelfOrderError):
    """
    Raised when a payment callback carries a transaction id that cannot be parsed.
    Absorbed by the callback handler, never surfaced to the webhook sender.
    """

    code = "MALFORMED_CALLBACK"

    def __init__(self, transaction_id, message=None):
        self.transaction_id = transaction_id
        if message is None:
            message = f"Unrecognised transaction id {transaction_id!r}"
        super().__init__(message)
