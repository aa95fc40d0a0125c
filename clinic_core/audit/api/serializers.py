# backend/clinic_core/audit/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.audit.models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "actor_account_id",
            "actor_name",
            "actor_role",
            "action",
            "resource_type",
            "resource_id",
            "resource_name",
            "details",
            "payload",
            "timestamp",
            "is_success",
            "error_message",
        ]
        read_only_fields = fields


class AuditQuerySerializer(serializers.Serializer):
    """Query-string filters for the audit log."""
    actor_id = serializers.UUIDField(required=False)
    action = serializers.CharField(required=False)
    resource_type = serializers.CharField(required=False)
    is_success = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(required=False, allow_blank=True)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
