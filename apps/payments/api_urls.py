from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api import PaymentViewSet

app_name = "payments_api"

router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payment")

urlpatterns = [
    path("", include(router.urls)),
]
