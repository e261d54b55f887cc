from django.urls import path, include
from rest_framework import routers

from .views import OrderViewSet

app_name = "orders"

router = routers.SimpleRouter()
router.register(r"orders", OrderViewSet, basename="order")

urlpatterns = [
    # Final paths are /api/orders/...
    path("", include(router.urls)),
]
