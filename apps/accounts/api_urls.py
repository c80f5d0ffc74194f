from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .api import (
    ForgotPasswordView,
    LoginView,
    LogoutView,
    RegisterView,
    UserAdminViewSet,
    WhoAmIView,
)

app_name = "accounts_api"

router = DefaultRouter()
router.register(r"users", UserAdminViewSet, basename="user")

urlpatterns = [
    path("auth/register/", RegisterView.as_view(), name="register"),
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("auth/forgot-password/", ForgotPasswordView.as_view(), name="forgot_password"),
    path("auth/whoami/", WhoAmIView.as_view(), name="whoami"),
    path("", include(router.urls)),
]
