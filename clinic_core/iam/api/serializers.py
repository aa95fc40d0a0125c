# backend/clinic_core/iam/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.iam.roles import Role


class AccountSerializer(serializers.Serializer):
    """Renders a PublicAccount; there is no credential to leak."""
    id = serializers.UUIDField()
    email = serializers.EmailField()
    display_name = serializers.CharField()
    role = serializers.CharField()
    is_active = serializers.BooleanField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()
    created_by = serializers.UUIDField(allow_null=True)
    last_login_at = serializers.DateTimeField(allow_null=True)
    version = serializers.IntegerField()
    profile = serializers.DictField()
    settings = serializers.DictField()


class AccountCreateSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField(write_only=True)
    display_name = serializers.CharField()
    role = serializers.ChoiceField(choices=Role.choices)
    profile = serializers.DictField(required=False)
    settings = serializers.DictField(required=False)


class AccountUpdateSerializer(serializers.Serializer):
    email = serializers.CharField(required=False)
    display_name = serializers.CharField(required=False)
    role = serializers.ChoiceField(choices=Role.choices, required=False)
    profile = serializers.DictField(required=False)
    settings = serializers.DictField(required=False)
    # optimistic concurrency: the version the client last read
    version = serializers.IntegerField(required=False, min_value=1)


class LoginRequestSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField()


class SessionAccountSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    display_name = serializers.CharField()
    email = serializers.CharField()
    role = serializers.CharField()
    profile = serializers.DictField()
    settings = serializers.DictField()
    permissions = serializers.ListField(child=serializers.CharField())


class LoginResponseSerializer(serializers.Serializer):
    account = SessionAccountSerializer()
    token = serializers.CharField()
    expires_at = serializers.DateTimeField()


class DetailSerializer(serializers.Serializer):
    detail = serializers.CharField()


class ChangeCredentialSerializer(serializers.Serializer):
    current_password = serializers.CharField()
    new_password = serializers.CharField()


class NavigationItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    label = serializers.CharField()
    path = serializers.CharField()


class MeResponseSerializer(serializers.Serializer):
    account = AccountSerializer()
    permissions = serializers.ListField(child=serializers.CharField())
    navigation = NavigationItemSerializer(many=True)


class RoleDefinitionSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField()
    permissions = serializers.ListField(child=serializers.CharField(), source="permission_values")
    is_system_role = serializers.BooleanField()
