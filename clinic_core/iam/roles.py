# backend/clinic_core/iam/roles.py
"""
Role registry: the fixed, build-time catalog of roles and their permissions.

Permission strings are namespaced "<resource>.<action>" or
"<resource>.<action>.<scope>" (e.g. "patients.update.vitals").
The registry is read-only at runtime; there is no mutation API.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass

from django.db import models


class Role(models.TextChoices):
    ADMIN = "admin", "Administrator"
    DOCTOR = "doctor", "Doctor"
    NURSE = "nurse", "Nurse"
    RECEPTIONIST = "receptionist", "Receptionist"


class Permission(str, enum.Enum):
    USERS_CREATE = "users.create"
    USERS_READ = "users.read"
    USERS_UPDATE = "users.update"
    USERS_DELETE = "users.delete"

    PATIENTS_CREATE = "patients.create"
    PATIENTS_READ = "patients.read"
    PATIENTS_READ_DEMOGRAPHICS = "patients.read.demographics"
    PATIENTS_UPDATE = "patients.update"
    PATIENTS_UPDATE_VITALS = "patients.update.vitals"
    PATIENTS_UPDATE_DEMOGRAPHICS = "patients.update.demographics"
    PATIENTS_DELETE = "patients.delete"

    APPOINTMENTS_CREATE = "appointments.create"
    APPOINTMENTS_READ = "appointments.read"
    APPOINTMENTS_UPDATE = "appointments.update"
    APPOINTMENTS_UPDATE_STATUS = "appointments.update.status"
    APPOINTMENTS_DELETE = "appointments.delete"

    PRESCRIPTIONS_CREATE = "prescriptions.create"
    PRESCRIPTIONS_READ = "prescriptions.read"
    PRESCRIPTIONS_UPDATE = "prescriptions.update"
    PRESCRIPTIONS_DELETE = "prescriptions.delete"

    DOCUMENTS_CREATE = "documents.create"
    DOCUMENTS_READ = "documents.read"
    DOCUMENTS_READ_INSURANCE = "documents.read.insurance"
    DOCUMENTS_UPDATE = "documents.update"
    DOCUMENTS_DELETE = "documents.delete"

    PATIENT_ACCESS_GRANT = "patient_access.grant"
    PATIENT_ACCESS_REVOKE = "patient_access.revoke"

    AUDIT_READ = "audit.read"
    SETTINGS_UPDATE = "settings.update"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | Permission") -> "Permission":
        """
        Validate a raw permission string against the catalog.
        Raises ValueError for anything not in the closed set.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            raise ValueError(f"Unknown permission: {value!r}") from None


@dataclass(frozen=True)
class RoleDefinition:
    id: str
    name: str
    description: str
    permissions: tuple[Permission, ...]
    is_system_role: bool = True

    @property
    def permission_values(self) -> list[str]:
        return [p.value for p in self.permissions]


def _crud(resource: str) -> tuple[Permission, ...]:
    return tuple(Permission.parse(f"{resource}.{action}") for action in ("create", "read", "update", "delete"))


P = Permission

ROLE_DEFINITIONS: tuple[RoleDefinition, ...] = (
    RoleDefinition(
        id=Role.ADMIN,
        name="Administrator",
        description="Full system access including user management",
        permissions=(
            *_crud("users"),
            *_crud("patients"),
            *_crud("appointments"),
            *_crud("prescriptions"),
            *_crud("documents"),
            P.AUDIT_READ,
            P.SETTINGS_UPDATE,
        ),
    ),
    RoleDefinition(
        id=Role.DOCTOR,
        name="Doctor",
        description="Full clinical access to assigned patients",
        permissions=(
            *_crud("patients"),
            *_crud("appointments"),
            *_crud("prescriptions"),
            *_crud("documents"),
            P.PATIENT_ACCESS_GRANT,
            P.PATIENT_ACCESS_REVOKE,
        ),
    ),
    RoleDefinition(
        id=Role.NURSE,
        name="Nurse",
        description="Can update vitals and view prescriptions for shared patients",
        permissions=(
            P.PATIENTS_READ,
            P.PATIENTS_UPDATE_VITALS,
            P.APPOINTMENTS_READ,
            P.APPOINTMENTS_UPDATE_STATUS,
            P.PRESCRIPTIONS_READ,
            P.DOCUMENTS_READ,
            P.DOCUMENTS_CREATE,
        ),
    ),
    RoleDefinition(
        id=Role.RECEPTIONIST,
        name="Receptionist",
        description="Can manage appointments and basic patient info",
        permissions=(
            P.PATIENTS_CREATE,
            P.PATIENTS_READ_DEMOGRAPHICS,
            P.PATIENTS_UPDATE_DEMOGRAPHICS,
            *_crud("appointments"),
            P.DOCUMENTS_READ_INSURANCE,
        ),
    ),
)

_BY_ID: dict[str, RoleDefinition] = {str(d.id): d for d in ROLE_DEFINITIONS}
_PERMISSIONS: dict[str, frozenset[str]] = {
    role_id: frozenset(p.value for p in d.permissions) for role_id, d in _BY_ID.items()
}

# Role groupings used by the authorization and sharing layers.
OWNING_CLINICAL_ROLES = frozenset({Role.DOCTOR})
SUPPORT_ROLES = frozenset({Role.NURSE, Role.RECEPTIONIST})
DELEGATING_ROLES = frozenset({Role.ADMIN, Role.DOCTOR})
PRESCRIBING_ROLES = frozenset({Role.ADMIN, Role.DOCTOR})


def is_role(value: object) -> bool:
    return str(value) in _BY_ID


def definition(role: str | None) -> RoleDefinition | None:
    if role is None:
        return None
    return _BY_ID.get(str(role))


def all_definitions() -> tuple[RoleDefinition, ...]:
    return ROLE_DEFINITIONS


def permissions_for(role: str | None) -> frozenset[str]:
    """
    Literal permission table for a role. Note this is NOT the admin
    universal-allow; use AuthorizationService.has_permission for checks.
    """
    if role is None:
        return frozenset()
    return _PERMISSIONS.get(str(role), frozenset())


def ordered_permissions_for(role: str | None) -> list[str]:
    d = definition(role)
    return d.permission_values if d else []
