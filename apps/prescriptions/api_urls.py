from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api import PrescriptionViewSet

app_name = "prescriptions_api"

router = DefaultRouter()
router.register(r"prescriptions", PrescriptionViewSet, basename="prescription")

urlpatterns = [
    path("", include(router.urls)),
]
