# backend/clinic_core/sharing/services.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from django.conf import settings
from django.db import transaction
from django.utils.timezone import is_naive, make_aware, now

from clinic_core.audit.models import AuditAction
from clinic_core.audit.services import AuditService, audit_failures
from clinic_core.common import errors
from clinic_core.common.store import VersionedStore
from clinic_core.iam import roles
from clinic_core.iam.authorization import AuthorizationService
from clinic_core.iam.models import Account
from clinic_core.iam.ownership import get_ownership_resolver
from clinic_core.iam.roles import Permission, Role
from clinic_core.iam.selectors import _parse_id, find_account
from clinic_core.sharing.models import LEVEL_ALLOWANCE, AccessLevel, PatientAccessGrant
from clinic_core.sharing.selectors import effective_grants, get_grant

logger = logging.getLogger(__name__)

PATIENT_ACCESS = "patient_access"

_grants: VersionedStore[PatientAccessGrant] = VersionedStore(PatientAccessGrant)


def _aware(value: datetime | None) -> datetime | None:
    # naive values are read in the current time zone
    if value is not None and is_naive(value):
        return make_aware(value)
    return value


def _reason_bounds() -> tuple[int, int]:
    return (
        int(getattr(settings, "CLINIC_GRANT_REASON_MIN_LENGTH", 10)),
        int(getattr(settings, "CLINIC_GRANT_REASON_MAX_LENGTH", 500)),
    )


def _clean_reason(value) -> str:
    reason = str(value or "").strip()
    lo, hi = _reason_bounds()
    if not (lo <= len(reason) <= hi):
        raise errors.ValidationError(f"Reason must be between {lo} and {hi} characters.")
    return reason


def _clean_level(value) -> AccessLevel:
    try:
        return AccessLevel(str(value))
    except ValueError:
        raise errors.ValidationError(f"Unknown access level: {value}") from None


def _clean_permissions(level: AccessLevel, requested: Iterable[str] | None) -> list[str]:
    allowance = [str(p) for p in LEVEL_ALLOWANCE[level]]
    if requested is None:
        return allowance

    wanted = {str(p) for p in requested}
    extra = sorted(wanted - set(allowance))
    if extra:
        raise errors.ValidationError(
            f"Permissions not allowed for {level.value} access.", details={"permissions": extra}
        )
    if "read" not in wanted:
        raise errors.ValidationError("A grant must include read permission.")
    return [p for p in allowance if p in wanted]


def _label(grantee: Account | None, patient_id: str) -> str:
    name = grantee.display_name if grantee else "Unknown"
    return f"{name} -> Patient {patient_id}"


class GrantService:
    """
    Patient access delegation (write model).

    Notes:
    - Grantees are support-role accounts only; granters need
      patient_access.grant (admins implicitly) and, unless admin, must own
      the patient.
    - Uniqueness of the active, unexpired grant per (patient, grantee) is
      checked under a lock on the grantee row.
    - Expiry is never written: selectors filter on expires_at at read time.
    """

    @staticmethod
    def grant(
        *,
        granted_by,
        patient_id: str,
        grantee_id,
        access_level: str,
        reason: str,
        permissions: Iterable[str] | None = None,
        expires_at: datetime | None = None,
        at: datetime | None = None,
    ) -> PatientAccessGrant:
        patient_id = str(patient_id or "").strip()
        at = _aware(at) or now()
        expires_at = _aware(expires_at)

        with audit_failures(
            actor_account_id=granted_by,
            action=AuditAction.CREATE,
            resource_type=PATIENT_ACCESS,
            resource_id=patient_id,
            resource_name=f"Patient {patient_id}",
            details="Grant patient access",
        ):
            with transaction.atomic():
                granter = find_account(granted_by)
                if granter is None or not granter.is_active:
                    raise errors.Forbidden("Only doctors or admins can grant patient access.")
                if not AuthorizationService.has_permission(granter.role, Permission.PATIENT_ACCESS_GRANT):
                    raise errors.Forbidden("Only doctors or admins can grant patient access.")

                if not patient_id:
                    raise errors.ValidationError("patient_id is required.")
                if granter.role != Role.ADMIN and not get_ownership_resolver().owns_patient(granter.id, patient_id):
                    raise errors.Forbidden("You can only share patients you own.")

                grantee_pk = _parse_id(grantee_id)
                grantee = (
                    Account.objects.select_for_update().filter(pk=grantee_pk).first()
                    if grantee_pk is not None
                    else None
                )
                if grantee is None:
                    raise errors.NotFound("Target account not found.")
                if grantee.role not in roles.SUPPORT_ROLES:
                    raise errors.Forbidden("Patient access can only be granted to nurses or receptionists.")
                if not grantee.is_active:
                    raise errors.ValidationError("Target account is deactivated.")

                level = _clean_level(access_level)
                granted_permissions = _clean_permissions(level, permissions)
                cleaned_reason = _clean_reason(reason)
                if expires_at is not None and expires_at <= at:
                    raise errors.ValidationError("expires_at must be in the future.")

                duplicate = (
                    effective_grants(at=at)
                    .filter(patient_id=patient_id, grantee_account_id=grantee.id)
                    .exists()
                )
                if duplicate:
                    raise errors.Conflict("Access already granted to this user.")

                grant = _grants.add(
                    patient_id=patient_id,
                    grantee_account_id=grantee.id,
                    granted_by_account_id=granter.id,
                    access_level=level,
                    permissions=granted_permissions,
                    granted_at=at,
                    expires_at=expires_at,
                    is_active=True,
                    reason=cleaned_reason,
                )

        logger.info(
            "Grant %s: %s access to patient %s for %s by %s",
            grant.id,
            level.value,
            patient_id,
            grantee.id,
            granter.id,
        )
        AuditService.record(
            actor_account_id=granter.id,
            action=AuditAction.CREATE,
            resource_type=PATIENT_ACCESS,
            resource_id=grant.id,
            resource_name=_label(grantee, patient_id),
            details=f"Granted {level.value} access to patient",
            payload={
                "patient_id": patient_id,
                "grantee_account_id": str(grantee.id),
                "access_level": level.value,
                "permissions": granted_permissions,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )
        return grant

    @staticmethod
    def revoke(*, revoked_by, grant_id, at: datetime | None = None) -> PatientAccessGrant:
        at = _aware(at) or now()

        with audit_failures(
            actor_account_id=revoked_by,
            action=AuditAction.DELETE,
            resource_type=PATIENT_ACCESS,
            resource_id=grant_id,
            details="Revoke patient access",
        ):
            with transaction.atomic():
                grant = get_grant(grant_id)
                if grant is None:
                    raise errors.NotFound("Access record not found.")

                revoker = find_account(revoked_by)
                if revoker is None or not revoker.is_active:
                    raise errors.Forbidden("Only the doctor who granted access or an admin can revoke it.")
                if revoker.role != Role.ADMIN and str(grant.granted_by_account_id) != str(revoker.id):
                    raise errors.Forbidden("Only the doctor who granted access or an admin can revoke it.")

                if not grant.is_active:
                    raise errors.Conflict("Access has already been revoked.")

                grant.is_active = False
                grant.revoked_at = at
                grant.revoked_by_account_id = revoker.id
                _grants.put(grant, fields=["is_active", "revoked_at", "revoked_by_account_id"])

        grantee = find_account(grant.grantee_account_id)
        logger.info("Grant %s revoked by %s", grant.id, revoker.id)
        AuditService.record(
            actor_account_id=revoker.id,
            action=AuditAction.DELETE,
            resource_type=PATIENT_ACCESS,
            resource_id=grant.id,
            resource_name=_label(grantee, grant.patient_id),
            details="Revoked patient access",
            payload={"patient_id": grant.patient_id, "grantee_account_id": str(grant.grantee_account_id)},
        )
        return grant
