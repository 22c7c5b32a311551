"""
Project-wide DRF exception handler.

Every error response carries the same envelope so clients can branch on a stable
machine-readable code:

    {"error": "<human message>", "code": "<CODE>", "correlation_id": "<id>"}
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from self_order.exceptions import SelfOrderError

from .infrastructure.middleware import get_correlation_id

logger = logging.getLogger(__name__)


def _correlation_id_for(context):
    request = context.get("request")
    return getattr(request, "correlation_id", None) or get_correlation_id()


def _error_body(message, code, correlation_id, details=None):
    body = {
        "error": message,
        "code": code,
        "correlation_id": correlation_id,
    }
    if details is not None:
        body["details"] = details
    return body


def api_exception_handler(exc, context):
    """
    Render domain, validation and storage failures as structured responses.

    - SelfOrderError subclasses map to their own status and code.
    - DRF validation errors become 400 VALIDATION_ERROR with field details.
    - DatabaseError means the store is unavailable: 503, logged, not retried here.
    - Anything else DRF knows about keeps its status with the envelope applied.
    """
    correlation_id = _correlation_id_for(context)
    view = context.get("view")
    view_name = view.__class__.__name__ if view else "unknown"

    if isinstance(exc, SelfOrderError):
        logger.info(f"{view_name}: {exc.code} - {exc.message}")
        return Response(
            _error_body(exc.message, exc.code, correlation_id),
            status=exc.status_code,
        )

    if isinstance(exc, DatabaseError):
        logger.error(f"{view_name}: storage unavailable - {exc}", exc_info=True)
        return Response(
            _error_body(
                "Service temporarily unavailable. Please try again.",
                "SERVICE_UNAVAILABLE",
                correlation_id,
            ),
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        response.data = _error_body(
            "Invalid request data.", "VALIDATION_ERROR", correlation_id, details=response.data
        )
        return response

    detail = response.data.get("detail") if isinstance(response.data, dict) else None
    codes = exc.get_codes() if hasattr(exc, "get_codes") else None
    code = codes.get("detail") if isinstance(codes, dict) else codes
    response.data = _error_body(
        str(detail) if detail is not None else str(exc),
        str(code or "ERROR").upper(),
        correlation_id,
    )
    return response
