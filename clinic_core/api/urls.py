# backend/clinic_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from clinic_core.audit.api.views import AuditEntryListView, AuditExportView, AuditResourceHistoryView
from clinic_core.iam.api.accounts import AccountViewSet
from clinic_core.iam.api.auth import LoginView, LogoutView
from clinic_core.iam.api.me import ChangeCredentialView, MeView
from clinic_core.iam.api.roles import RoleListView
from clinic_core.sharing.api.views import PatientAccessGrantViewSet, PatientAccessView

router = DefaultRouter()

router.register(r"accounts", AccountViewSet, basename="accounts")
router.register(r"patient-access", PatientAccessGrantViewSet, basename="patient-access")

urlpatterns = [
    # 🔐 Auth + /me
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),
    path("me/credential/", ChangeCredentialView.as_view(), name="me-credential"),
    path("roles/", RoleListView.as_view(), name="roles"),

    # ✅ Effective access for one patient
    path("patients/<str:patient_id>/access/", PatientAccessView.as_view(), name="patient-access-effective"),

    # ✅ Audit trail (administrators only)
    path("audit/entries/", AuditEntryListView.as_view(), name="audit-entries"),
    path("audit/entries/export/", AuditExportView.as_view(), name="audit-entries-export"),
    path(
        "audit/resources/<str:resource_type>/<str:resource_id>/",
        AuditResourceHistoryView.as_view(),
        name="audit-resource-history",
    ),
]

urlpatterns += router.urls
