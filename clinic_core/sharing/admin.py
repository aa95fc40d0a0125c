# backend/clinic_core/sharing/admin.py
from __future__ import annotations

from django.contrib import admin

from clinic_core.sharing.models import PatientAccessGrant


@admin.register(PatientAccessGrant)
class PatientAccessGrantAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "grantee_account_id", "access_level", "is_active", "granted_at", "expires_at")
    list_filter = ("access_level", "is_active")
    search_fields = ("patient_id", "reason")
    ordering = ("-granted_at",)
    readonly_fields = ("version", "revoked_at", "revoked_by_account_id", "created_at", "updated_at")
