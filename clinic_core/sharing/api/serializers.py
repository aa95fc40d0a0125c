# backend/clinic_core/sharing/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.sharing.models import AccessLevel, GrantPermission


class GrantSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    patient_id = serializers.CharField()
    grantee_account_id = serializers.UUIDField()
    granted_by_account_id = serializers.UUIDField()
    access_level = serializers.CharField()
    permissions = serializers.ListField(child=serializers.CharField())
    granted_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField(allow_null=True)
    is_active = serializers.BooleanField()
    reason = serializers.CharField()
    revoked_at = serializers.DateTimeField(allow_null=True)
    revoked_by_account_id = serializers.UUIDField(allow_null=True)
    version = serializers.IntegerField()


class GrantCreateSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=64)
    grantee_account_id = serializers.UUIDField()
    access_level = serializers.ChoiceField(choices=AccessLevel.choices)
    permissions = serializers.ListField(
        child=serializers.ChoiceField(choices=GrantPermission.choices),
        required=False,
        allow_empty=False,
    )
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
    reason = serializers.CharField()


class PatientGrantSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    patient_id = serializers.CharField()
    grantee_account_id = serializers.UUIDField()
    grantee_name = serializers.CharField()
    grantee_role = serializers.CharField()
    grantee_email = serializers.CharField()
    granted_by_account_id = serializers.UUIDField()
    granted_by_name = serializers.CharField()
    access_level = serializers.CharField()
    permissions = serializers.ListField(child=serializers.CharField())
    granted_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField(allow_null=True)
    reason = serializers.CharField()
    is_expired = serializers.BooleanField()


class EffectiveGrantSerializer(serializers.Serializer):
    patient_id = serializers.CharField()
    access_level = serializers.CharField()
    permissions = serializers.ListField(child=serializers.CharField())
    expires_at = serializers.DateTimeField(allow_null=True)


class PatientAccessSerializer(serializers.Serializer):
    patient_id = serializers.CharField()
    access_level = serializers.CharField(allow_null=True)
    can_read = serializers.BooleanField()
    can_update = serializers.BooleanField()
    visible_fields = serializers.ListField(child=serializers.CharField())
    editable_fields = serializers.ListField(child=serializers.CharField())
