# backend/clinic_core/api/urls_v1.py
from django.urls import include, path

# Schema-only urlconf: documents /api/v1/* and skips the unversioned alias.
urlpatterns = [
    path("api/v1/", include("clinic_core.api.urls")),
]
