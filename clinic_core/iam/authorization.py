# backend/clinic_core/iam/authorization.py
"""
Permission evaluation, layered:

  1) coarse role permission (role registry, admin universal allow)
  2) resource-specific carve-outs (patients, appointments, prescriptions, documents)
  3) field-level refinement over the three patient field buckets

The service answers yes/no and returns allow-lists; it never mutates records.
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Iterable, Mapping

from clinic_core.iam import roles
from clinic_core.iam.models import Account
from clinic_core.iam.ownership import get_ownership_resolver
from clinic_core.iam.roles import Permission, Role
from clinic_core.iam.selectors import find_account
from clinic_core.sharing.models import AccessLevel
from clinic_core.sharing.selectors import active_grant_for


class FieldBucket(str, enum.Enum):
    DEMOGRAPHICS = "demographics"
    VITALS = "vitals"
    MEDICAL = "medical"


PATIENT_FIELD_BUCKETS: dict[FieldBucket, tuple[str, ...]] = {
    FieldBucket.DEMOGRAPHICS: (
        "first_name",
        "last_name",
        "date_of_birth",
        "gender",
        "email",
        "phone",
        "address",
        "emergency_contact",
        "insurance_info",
    ),
    FieldBucket.VITALS: (
        "blood_pressure",
        "heart_rate",
        "temperature",
        "weight",
        "height",
        "oxygen_saturation",
    ),
    FieldBucket.MEDICAL: (
        "medical_history",
        "allergies",
        "current_medications",
        "chronic_conditions",
        "surgical_history",
        "family_history",
        "immunizations",
        "lab_results",
        "notes",
    ),
}

ALL_BUCKETS = frozenset(FieldBucket)

# role -> buckets it may see at all
_VISIBLE_BUCKETS: dict[str, frozenset[FieldBucket]] = {
    Role.ADMIN: ALL_BUCKETS,
    Role.DOCTOR: ALL_BUCKETS,
    Role.NURSE: frozenset({FieldBucket.DEMOGRAPHICS, FieldBucket.VITALS}),
    Role.RECEPTIONIST: frozenset({FieldBucket.DEMOGRAPHICS}),
}

# (role, access level) -> buckets it may write
_EDITABLE_BUCKETS: dict[tuple[str, AccessLevel], frozenset[FieldBucket]] = {
    (Role.NURSE, AccessLevel.FULL): frozenset({FieldBucket.DEMOGRAPHICS, FieldBucket.VITALS}),
    (Role.NURSE, AccessLevel.LIMITED): frozenset({FieldBucket.VITALS}),
    (Role.RECEPTIONIST, AccessLevel.FULL): frozenset({FieldBucket.DEMOGRAPHICS}),
}

# Narrower update allowance under a `limited` grant; roles absent here get none.
_LIMITED_UPDATE_PERMISSION: dict[str, Permission] = {
    Role.NURSE: Permission.PATIENTS_UPDATE_VITALS,
}

# Document categories a role is confined to, regardless of documents.read.
DOCUMENT_CATEGORY_RESTRICTIONS: dict[str, frozenset[str]] = {
    Role.RECEPTIONIST: frozenset({"insurance"}),
}

NAVIGATION_ITEMS: tuple[tuple[str, str, str, tuple[Permission, ...]], ...] = (
    ("dashboard", "Dashboard", "/dashboard", ()),
    ("patients", "Patients", "/dashboard/patients", (Permission.PATIENTS_READ, Permission.PATIENTS_READ_DEMOGRAPHICS)),
    ("appointments", "Appointments", "/dashboard/appointments", (Permission.APPOINTMENTS_READ,)),
    ("prescriptions", "Prescriptions", "/dashboard/prescriptions", (Permission.PRESCRIPTIONS_READ,)),
    ("users", "Users", "/dashboard/users", (Permission.USERS_READ,)),
    ("audit-logs", "Audit Logs", "/dashboard/audit-logs", (Permission.AUDIT_READ,)),
)


def _fields(buckets: Iterable[FieldBucket]) -> frozenset[str]:
    out: set[str] = set()
    for b in buckets:
        out.update(PATIENT_FIELD_BUCKETS[b])
    return frozenset(out)


def _level(value: Any) -> AccessLevel | None:
    if value is None:
        return None
    try:
        return AccessLevel(str(value))
    except ValueError:
        return None


def _active_actor(actor_id) -> Account | None:
    actor = find_account(actor_id)
    if actor is None or not actor.is_active:
        return None
    return actor


class AuthorizationService:
    # -------------------------
    # Role-level (pure)
    # -------------------------
    @staticmethod
    def has_permission(role: str | None, permission: str | Permission) -> bool:
        if not role:
            return False

        # Administrator is a universal allow; never consult the table for it.
        if role == Role.ADMIN:
            return True

        return str(permission) in roles.permissions_for(role)

    @staticmethod
    def has_any(role: str | None, permissions: Iterable[str | Permission]) -> bool:
        if role == Role.ADMIN:
            return True
        return any(AuthorizationService.has_permission(role, p) for p in permissions)

    @staticmethod
    def has_all(role: str | None, permissions: Iterable[str | Permission]) -> bool:
        if role == Role.ADMIN:
            return True
        return all(AuthorizationService.has_permission(role, p) for p in permissions)

    @staticmethod
    def can_manage_accounts(role: str | None) -> bool:
        return role == Role.ADMIN

    # -------------------------
    # Field-level
    # -------------------------
    @staticmethod
    def allowed_fields(role: str | None, access_level: str | AccessLevel = AccessLevel.FULL) -> frozenset[str]:
        if not role:
            return frozenset()
        return _fields(_VISIBLE_BUCKETS.get(role, frozenset()))

    @staticmethod
    def editable_fields(role: str | None, access_level: str | AccessLevel = AccessLevel.FULL) -> frozenset[str]:
        if not role:
            return frozenset()
        if role in (Role.ADMIN, Role.DOCTOR):
            return _fields(ALL_BUCKETS)

        level = _level(access_level)
        if level is None:
            return frozenset()
        return _fields(_EDITABLE_BUCKETS.get((role, level), frozenset()))

    @staticmethod
    def can_update_field(role: str | None, field: str, access_level: str | AccessLevel = AccessLevel.FULL) -> bool:
        return field in AuthorizationService.editable_fields(role, access_level)

    @staticmethod
    def redact_fields(role: str | None, record: Mapping[str, Any], access_level: str | AccessLevel = AccessLevel.FULL) -> dict:
        """
        Copy of a patient record without the bucket fields the role may not see.
        Keys outside the three buckets (ids, timestamps) pass through.
        """
        hidden = _fields(ALL_BUCKETS) - AuthorizationService.allowed_fields(role, access_level)
        return {k: v for k, v in record.items() if k not in hidden}

    @staticmethod
    def navigation_for(role: str | None) -> list[dict[str, str]]:
        return [
            {"id": item_id, "label": label, "path": path}
            for item_id, label, path, needs in NAVIGATION_ITEMS
            if not needs or AuthorizationService.has_any(role, needs)
        ]

    # -------------------------
    # Resource-specific
    # -------------------------
    @staticmethod
    def can_access_patient(
        actor_id,
        patient_id: str,
        action: str,
        *,
        field: str | None = None,
        at: datetime | None = None,
    ) -> bool:
        actor = _active_actor(actor_id)
        if actor is None:
            return False

        if actor.role == Role.ADMIN:
            return True

        if actor.role in roles.OWNING_CLINICAL_ROLES:
            if not get_ownership_resolver().owns_patient(actor.id, str(patient_id)):
                return False
            return field is None or field in AuthorizationService.editable_fields(actor.role)

        if actor.role not in roles.SUPPORT_ROLES:
            return False

        # support roles: delegated access only
        grant = active_grant_for(actor.id, str(patient_id), at=at)
        if grant is None:
            return False

        level = _level(grant.access_level)

        if action == "read":
            return field is None or field in AuthorizationService.allowed_fields(actor.role, level)

        if action != "update" or "update" not in (grant.permissions or []):
            return False

        if level == AccessLevel.FULL:
            pass
        elif level == AccessLevel.LIMITED and actor.role in _LIMITED_UPDATE_PERMISSION:
            if not AuthorizationService.has_permission(actor.role, _LIMITED_UPDATE_PERMISSION[actor.role]):
                return False
        else:
            return False

        editable = AuthorizationService.editable_fields(actor.role, level)
        if field is None:
            return bool(editable)
        return field in editable

    @staticmethod
    def can_access_appointment(actor_id, appointment_id, action: str) -> bool:
        actor = _active_actor(actor_id)
        if actor is None:
            return False
        return AuthorizationService.has_permission(actor.role, f"appointments.{action}")

    @staticmethod
    def can_access_prescription(actor_id, prescription_id, action: str) -> bool:
        actor = _active_actor(actor_id)
        if actor is None:
            return False

        # mutation is for prescribing roles only, whatever patient access was delegated
        if action in {"create", "update", "delete"}:
            return actor.role in roles.PRESCRIBING_ROLES

        return AuthorizationService.has_permission(actor.role, f"prescriptions.{action}")

    @staticmethod
    def can_access_document(actor_id, document_id, action: str, category: str | None = None) -> bool:
        actor = _active_actor(actor_id)
        if actor is None:
            return False

        restricted_to = DOCUMENT_CATEGORY_RESTRICTIONS.get(actor.role)
        if restricted_to is not None:
            return action == "read" and category in restricted_to

        return AuthorizationService.has_permission(actor.role, f"documents.{action}")
