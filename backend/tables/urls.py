from django.urls import path, include
from rest_framework import routers

from .views import DiningTableViewSet

app_name = "tables"

router = routers.SimpleRouter()
router.register(r"tables", DiningTableViewSet, basename="table")

urlpatterns = [
    # Final paths are /api/tables/, /api/tables/check/ and /api/tables/<pk>/status/
    path("", include(router.urls)),
]
