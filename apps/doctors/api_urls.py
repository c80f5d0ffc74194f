from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api import DoctorViewSet, SpecialtyViewSet

app_name = "doctors_api"

router = DefaultRouter()
router.register(r"specialties", SpecialtyViewSet, basename="specialty")
router.register(r"doctors", DoctorViewSet, basename="doctor")

urlpatterns = [
    path("", include(router.urls)),
]
