from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product_name", "variant_name", "quantity", "price_at_sale", "modifiers", "notes")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "store_location", "table", "source", "status", "grand_total", "created_at")
    list_filter = ("status", "source", "order_type", "store_location")
    search_fields = ("order_number", "customer_name")
    readonly_fields = ("order_number", "created_at", "updated_at")
    inlines = [OrderItemInline]
