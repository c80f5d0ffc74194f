from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api import PharmacyViewSet

app_name = "pharmacies_api"

router = DefaultRouter()
router.register(r"pharmacies", PharmacyViewSet, basename="pharmacy")

urlpatterns = [
    path("", include(router.urls)),
]
