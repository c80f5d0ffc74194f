from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api import MedicalHistoryViewSet, PatientViewSet

app_name = "patients_api"

router = DefaultRouter()
router.register(r"patients", PatientViewSet, basename="patient")
router.register(r"medical-history", MedicalHistoryViewSet, basename="medical-history")

urlpatterns = [
    path("", include(router.urls)),
]
