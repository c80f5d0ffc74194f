from django.urls import path

from .api import ContactView

app_name = "contact_api"

urlpatterns = [
    path("contact/", ContactView.as_view(), name="contact"),
]
