from django.contrib import admin, messages

from .exceptions import SelfOrderError
from .models import SelfOrderSession, SelfOrderItem, PaymentReference
from .services import SessionExpiryService


class SelfOrderItemInline(admin.TabularInline):
    model = SelfOrderItem
    extra = 0
    readonly_fields = ("product", "variant", "quantity", "modifiers", "notes", "created_at")
    can_delete = False


class PaymentReferenceInline(admin.TabularInline):
    model = PaymentReference
    extra = 0
    readonly_fields = ("transaction_id", "method", "status", "amount", "expires_at", "created_at")
    can_delete = False


@admin.register(SelfOrderSession)
class SelfOrderSessionAdmin(admin.ModelAdmin):
    list_display = (
        "session_code",
        "store_location",
        "table",
        "status",
        "order_created",
        "expires_at",
        "created_at",
    )
    list_filter = ("status", "store_location", "order_created")
    search_fields = ("session_code", "customer_name")
    readonly_fields = (
        "session_code",
        "status",
        "order_created",
        "fulfillment_order",
        "created_at",
        "updated_at",
    )
    inlines = [SelfOrderItemInline, PaymentReferenceInline]
    actions = ["force_expire_sessions"]

    @admin.action(description="Force-expire selected sessions")
    def force_expire_sessions(self, request, queryset):
        expired = 0
        for session in queryset:
            try:
                SessionExpiryService.force_expire(session.session_code)
                expired += 1
            except SelfOrderError as e:
                self.message_user(request, f"{session.session_code}: {e.message}", messages.WARNING)
        if expired:
            self.message_user(request, f"Expired {expired} session(s)", messages.SUCCESS)


@admin.register(PaymentReference)
class PaymentReferenceAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "session", "method", "status", "amount", "created_at")
    list_filter = ("method", "status")
    search_fields = ("transaction_id", "session__session_code")
    readonly_fields = ("transaction_id", "session", "method", "amount", "created_at", "updated_at")
