"""
URL configuration for the self-order app.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    SessionCreateView,
    SessionDetailView,
    SessionItemsView,
    SessionSubmitView,
    SessionTotalView,
    SessionPaymentView,
    SessionQrisPaymentView,
    SessionPaymentStatusView,
    SessionExtendView,
    PaymentCallbackView,
    AltPaymentCallbackView,
    SelfOrderSessionAdminViewSet,
)

app_name = 'self_order'

router = DefaultRouter()
router.register(r'admin/sessions', SelfOrderSessionAdminViewSet, basename='admin-session')

urlpatterns = [
    # POST /api/self-order/sessions/ - Create session
    path('sessions/', SessionCreateView.as_view(), name='session-create'),

    # GET /api/self-order/sessions/{code}/ - Session with cart
    path('sessions/<str:code>/', SessionDetailView.as_view(), name='session-detail'),

    # GET/POST /api/self-order/sessions/{code}/items/ - List or add cart items
    path('sessions/<str:code>/items/', SessionItemsView.as_view(), name='session-items'),

    # POST /api/self-order/sessions/{code}/submit/ - Send cart to kitchen
    path('sessions/<str:code>/submit/', SessionSubmitView.as_view(), name='session-submit'),

    # GET /api/self-order/sessions/{code}/total/ - Cart totals
    path('sessions/<str:code>/total/', SessionTotalView.as_view(), name='session-total'),

    # POST /api/self-order/sessions/{code}/pay/ - Create payment
    path('sessions/<str:code>/pay/', SessionPaymentView.as_view(), name='session-pay'),

    # POST /api/self-order/sessions/{code}/pay/qris/ - QRIS shortcut
    path('sessions/<str:code>/pay/qris/', SessionQrisPaymentView.as_view(), name='session-pay-qris'),

    # GET /api/self-order/sessions/{code}/payment-status/ - Payment status
    path('sessions/<str:code>/payment-status/', SessionPaymentStatusView.as_view(), name='session-payment-status'),

    # PUT /api/self-order/sessions/{code}/extend/ - Extend deadline
    path('sessions/<str:code>/extend/', SessionExtendView.as_view(), name='session-extend'),

    # POST /api/self-order/payment/callback/ - Gateway webhook
    path('payment/callback/', PaymentCallbackView.as_view(), name='payment-callback'),

    # POST /api/self-order/payment-callback/ - Gateway webhook (alternate body)
    path('payment-callback/', AltPaymentCallbackView.as_view(), name='payment-callback-alt'),

    # Staff endpoints
    path('', include(router.urls)),
]
