from django.contrib import admin
from .models import StoreLocation, DiningTable


class DiningTableInline(admin.TabularInline):
    model = DiningTable
    extra = 0


@admin.register(StoreLocation)
class StoreLocationAdmin(admin.ModelAdmin):
    list_display = ("name", "business_name", "tax_rate", "service_charge_rate", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "business_name")
    inlines = [DiningTableInline]


@admin.register(DiningTable)
class DiningTableAdmin(admin.ModelAdmin):
    list_display = ("name", "store_location", "is_active")
    list_filter = ("store_location", "is_active")
