"""
URL configuration for core_backend project.
"""

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
    path("admin/", admin.site.urls),
    # The orders and tables apps register their own "orders" / "tables" prefixes
    path("api/", include("orders.urls")),
    path("api/", include("tables.urls")),
    path("api/kitchen/", include("kds.urls")),
    path("api/loyalty/", include("loyalty.urls")),
]
