# backend/config/urls.py
from django.contrib import admin
from django.urls import include, path

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path("admin/", admin.site.urls),

    # OpenAPI
    path("api/schema/", SpectacularAPIView.as_view(urlconf="clinic_core.api.urls_v1"), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # ✅ Primary versioned API (frontend should use this)
    path("api/v1/", include("clinic_core.api.urls")),

    # ✅ Backwards-compatible alias (legacy clients)
    # Keep AFTER schema/docs so those explicit routes win.
    path("api/", include("clinic_core.api.urls")),
]
