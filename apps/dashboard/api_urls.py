from django.urls import path

from .api import AdminDashboardView, DoctorDashboardView, SecretaryDashboardView

app_name = "dashboard_api"

urlpatterns = [
    path("dashboard/admin/", AdminDashboardView.as_view(), name="admin"),
    path("dashboard/secretary/", SecretaryDashboardView.as_view(), name="secretary"),
    path("dashboard/doctor/", DoctorDashboardView.as_view(), name="doctor"),
]
