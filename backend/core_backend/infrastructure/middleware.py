from contextvars import ContextVar
import logging
import uuid

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

_correlation_id = ContextVar("correlation_id", default=None)


def get_correlation_id():
    """Correlation id of the request being handled, or None outside a request."""
    return _correlation_id.get()


class CorrelationIdMiddleware(MiddlewareMixin):
    """
    Attach a correlation id to every request and echo it on the response.

    The id is taken from the X-Correlation-ID header when a client or gateway
    already set one, otherwise a fresh UUID is generated. It is exposed as
    request.correlation_id, stamped onto log records by CorrelationIdFilter,
    and included in structured error responses.
    """

    def process_request(self, request):
        incoming = request.META.get("HTTP_X_CORRELATION_ID", "").strip()
        correlation_id = incoming[:64] if incoming else uuid.uuid4().hex

        request.correlation_id = correlation_id
        request._correlation_token = _correlation_id.set(correlation_id)
        return None

    def process_response(self, request, response):
        correlation_id = getattr(request, "correlation_id", None)
        if correlation_id:
            response[CORRELATION_HEADER] = correlation_id

        token = getattr(request, "_correlation_token", None)
        if token is not None:
            _correlation_id.reset(token)
            request._correlation_token = None
        return response


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds `correlation_id` to every record."""

    def filter(self, record):
        record.correlation_id = get_correlation_id() or "-"
        return True
