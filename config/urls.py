# config/urls.py
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    # Admin
    path("admin/", admin.site.urls),

    # Healthcheck
    path("health/", lambda r: JsonResponse({"ok": True}, status=200), name="health"),

    # OpenAPI schema + Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # ---------- v1 APIs ----------
    path("api/v1/", include(("apps.accounts.api_urls", "accounts_api"), namespace="accounts_api")),
    path("api/v1/", include(("apps.patients.api_urls", "patients_api"), namespace="patients_api")),
    path("api/v1/", include(("apps.doctors.api_urls", "doctors_api"), namespace="doctors_api")),
    path("api/v1/", include(("apps.pharmacies.api_urls", "pharmacies_api"), namespace="pharmacies_api")),
    path("api/v1/", include(("apps.prescriptions.api_urls", "prescriptions_api"), namespace="prescriptions_api")),
    path("api/v1/", include(("apps.appointments.api_urls", "appointments_api"), namespace="appointments_api")),
    path("api/v1/", include(("apps.payments.api_urls", "payments_api"), namespace="payments_api")),
    path("api/v1/", include(("apps.dashboard.api_urls", "dashboard_api"), namespace="dashboard_api")),
    path("api/v1/", include(("apps.contact.api_urls", "contact_api"), namespace="contact_api")),
]

# Media files during development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
