# backend/clinic_core/iam/admin.py
from __future__ import annotations

from django.contrib import admin

from clinic_core.iam.models import Account


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("email", "display_name", "role", "is_active", "last_login_at", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("email", "display_name")
    ordering = ("-created_at",)
    # credential hashes and role changes go through AccountService only
    exclude = ("credential",)
    readonly_fields = ("role", "version", "created_by", "last_login_at", "created_at", "updated_at")
