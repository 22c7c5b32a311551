"""
URL configuration for core_backend project.

The self-order API is mounted under /api/self-order/. Catalog, store locations and
fulfillment orders are managed through the Django admin.
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
    path("admin/", admin.site.urls),
    path("api/self-order/", include("self_order.urls")),
]
