# backend/clinic_core/audit/admin.py
from django.contrib import admin

from clinic_core.audit.models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = (
        "timestamp",
        "actor_name",
        "actor_role",
        "action",
        "resource_type",
        "resource_id",
        "is_success",
    )
    list_filter = ("action", "resource_type", "is_success")
    search_fields = ("actor_name", "resource_name", "details")
    ordering = ("-id",)

    # append-only: entries are never edited or removed by hand
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
