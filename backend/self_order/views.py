"""
Self-order API views.

Customer endpoints are public: a session code is the capability, handed out
through the table QR code. Gateway callbacks are public too and always answer
200 so senders do not retry business-level rejections. The staff listing
requires an admin user.
"""

from django.conf import settings
from django.db.models import Count
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ParseError
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView
import logging

from settings.models import StoreLocation, DiningTable
from .exceptions import NotFound, SessionExpired
from .filters import SelfOrderSessionFilter
from .models import SelfOrderSession, SessionStatus
from .serializers import (
    CreateSessionSerializer,
    AddItemSerializer,
    CreatePaymentSerializer,
    QrisPaymentSerializer,
    PaymentCallbackSerializer,
    AltPaymentCallbackSerializer,
    ExtendSessionSerializer,
    SelfOrderSessionSerializer,
    SelfOrderSessionListSerializer,
    SelfOrderItemSerializer,
    CartTotalsSerializer,
)
from .services import SessionStore, KitchenHandoffService, PaymentOrchestrator, SessionExpiryService

logger = logging.getLogger(__name__)


class PublicSelfOrderView(APIView):
    """
    Base class for customer-facing self-order views: no authentication,
    no CSRF, errors rendered by the project exception handler.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def validated(self, serializer_class, request):
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class SessionCreateView(PublicSelfOrderView):
    """POST /api/self-order/sessions/ - start a session for an outlet and optional table."""

    def post(self, request):
        data = self.validated(CreateSessionSerializer, request)

        store_location = StoreLocation.objects.filter(id=data["outletId"], is_active=True).first()
        if store_location is None:
            raise NotFound("Outlet not found")

        table = None
        if data.get("tableId"):
            table = DiningTable.objects.filter(
                id=data["tableId"], store_location=store_location, is_active=True
            ).first()
            if table is None:
                raise NotFound("Table not found at this outlet")

        session = SessionStore.create_session(
            store_location,
            table=table,
            language=data.get("language"),
            customer_name=data.get("customerName", ""),
        )

        base_url = settings.SELF_ORDER["PUBLIC_BASE_URL"].rstrip("/")
        return Response(
            {
                "sessionId": session.id,
                "sessionCode": session.session_code,
                "qrCodeUrl": f"{base_url}/self-order/{session.session_code}",
                "expiresAt": session.expires_at,
            },
            status=status.HTTP_201_CREATED,
        )


class SessionDetailView(PublicSelfOrderView):
    """GET /api/self-order/sessions/{code}/ - session with its cart."""

    def get(self, request, code):
        session = SessionStore.get(code)
        if session.status == SessionStatus.EXPIRED or session.is_past_deadline():
            raise SessionExpired()
        return Response(SelfOrderSessionSerializer(session).data)


class SessionItemsView(PublicSelfOrderView):
    """
    GET  /api/self-order/sessions/{code}/items/ - list cart items
    POST /api/self-order/sessions/{code}/items/ - add a cart item
    """

    def get(self, request, code):
        items = SessionStore.list_items(code)
        return Response(SelfOrderItemSerializer(items, many=True).data)

    def post(self, request, code):
        data = self.validated(AddItemSerializer, request)
        item = SessionStore.add_item(
            code,
            product_id=data["productId"],
            variant_id=data.get("variantId"),
            quantity=data["quantity"],
            modifiers=data.get("modifiers"),
            notes=data.get("notes") or "",
        )
        return Response(SelfOrderItemSerializer(item).data, status=status.HTTP_201_CREATED)


class SessionSubmitView(PublicSelfOrderView):
    """POST /api/self-order/sessions/{code}/submit/ - finalize the cart and send it to the kitchen."""

    def post(self, request, code):
        result = KitchenHandoffService.submit(code)
        order = result.order
        return Response({
            "success": True,
            "sessionStatus": result.session.status,
            "orderId": order.id if order else None,
            "orderNumber": order.order_number if order else None,
        })


class SessionTotalView(PublicSelfOrderView):
    """GET /api/self-order/sessions/{code}/total/ - computed cart totals."""

    def get(self, request, code):
        totals = PaymentOrchestrator.calculate_total(code)
        return Response(CartTotalsSerializer(totals).data)


class SessionPaymentView(PublicSelfOrderView):
    """POST /api/self-order/sessions/{code}/pay/ - start a payment with any offered method."""

    def post(self, request, code):
        data = self.validated(CreatePaymentSerializer, request)
        result = PaymentOrchestrator.create_payment(
            code,
            method=data["paymentMethod"],
            amount=data["amount"],
            customer_email=data.get("customerEmail", ""),
            customer_phone=data.get("customerPhone", ""),
        )
        return Response(result, status=status.HTTP_201_CREATED)


class SessionQrisPaymentView(PublicSelfOrderView):
    """POST /api/self-order/sessions/{code}/pay/qris/ - QRIS shortcut."""

    def post(self, request, code):
        data = self.validated(QrisPaymentSerializer, request)
        result = PaymentOrchestrator.create_payment(code, method="qris", amount=data["amount"])
        return Response(result, status=status.HTTP_201_CREATED)


class SessionPaymentStatusView(PublicSelfOrderView):
    """GET /api/self-order/sessions/{code}/payment-status/ - orchestration status snapshot."""

    def get(self, request, code):
        return Response(PaymentOrchestrator.get_status(code))


class SessionExtendView(PublicSelfOrderView):
    """PUT /api/self-order/sessions/{code}/extend/ - push the session deadline back."""

    def put(self, request, code):
        data = self.validated(ExtendSessionSerializer, request)
        session = SessionExpiryService.extend(code, minutes=data.get("minutes"))
        return Response({
            "sessionCode": session.session_code,
            "status": session.status,
            "expiresAt": session.expires_at,
        })


@method_decorator(csrf_exempt, name="dispatch")
class PaymentCallbackView(PublicSelfOrderView):
    """
    POST /api/self-order/payment/callback/ - gateway webhook.

    Always 200 {received: true}: malformed bodies, unknown transaction ids and
    rejected state changes are logged, not reported back to the sender.
    """

    serializer_class = PaymentCallbackSerializer

    def post(self, request):
        try:
            body = request.data
        except ParseError as e:
            logger.warning(f"Ignoring unparseable payment callback body: {e}")
            return Response({"received": True})

        serializer = self.serializer_class(data=body)
        if not serializer.is_valid():
            logger.warning(f"Ignoring malformed payment callback body: {serializer.errors}")
            return Response({"received": True})

        transaction_id, callback_status = self.get_callback(serializer.validated_data)
        PaymentOrchestrator.handle_callback(transaction_id, callback_status)
        return Response({"received": True})

    def get_callback(self, data):
        return data["orderId"], data["status"]


class AltPaymentCallbackView(PaymentCallbackView):
    """POST /api/self-order/payment-callback/ - alternate webhook body {sessionCode, paymentId, status}."""

    serializer_class = AltPaymentCallbackSerializer

    def get_callback(self, data):
        return data["paymentId"], data["status"]


class SelfOrderSessionAdminViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Staff view of self-order sessions.

    Endpoints:
    - GET  /api/self-order/admin/sessions/ - list, filterable by status, store_location, table
    - GET  /api/self-order/admin/sessions/{code}/ - session with cart
    - POST /api/self-order/admin/sessions/{code}/expire/ - force-expire
    """

    permission_classes = [IsAdminUser]
    filterset_class = SelfOrderSessionFilter
    lookup_field = "session_code"
    lookup_url_kwarg = "code"

    def get_queryset(self):
        return (
            SelfOrderSession.objects
            .select_related("store_location", "table", "fulfillment_order")
            .annotate(item_count=Count("items"))
            .order_by("-created_at")
        )

    def get_serializer_class(self):
        if self.action == "list":
            return SelfOrderSessionListSerializer
        return SelfOrderSessionSerializer

    @action(detail=True, methods=["post"])
    def expire(self, request, code=None):
        session = SessionExpiryService.force_expire(code)
        logger.info(f"Session {code} force-expired by {request.user}")
        return Response(SelfOrderSessionSerializer(session).data)
