# backend/clinic_core/sharing/selectors.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from django.db.models import Q, QuerySet
from django.utils.timezone import now

from clinic_core.iam import roles
from clinic_core.iam.ownership import get_ownership_resolver
from clinic_core.iam.roles import Role
from clinic_core.iam.selectors import accounts_by_id, find_account
from clinic_core.sharing.models import AccessLevel, PatientAccessGrant


@dataclass(frozen=True)
class EffectiveGrant:
    patient_id: str
    access_level: str
    permissions: tuple[str, ...]
    expires_at: datetime | None = None


@dataclass(frozen=True)
class PatientGrantView:
    """
    Grant row enriched with the names a sharing screen displays.
    """
    id: UUID
    patient_id: str
    grantee_account_id: UUID
    grantee_name: str
    grantee_role: str
    grantee_email: str
    granted_by_account_id: UUID
    granted_by_name: str
    access_level: str
    permissions: tuple[str, ...]
    granted_at: datetime
    expires_at: datetime | None
    reason: str
    is_expired: bool


def effective_grants(*, at: datetime | None = None) -> QuerySet[PatientAccessGrant]:
    """
    Active and unexpired grants at `at` (default: now).
    Expiry is evaluated here, at read time, and nowhere else.
    """
    at = at or now()
    return PatientAccessGrant.objects.filter(is_active=True).filter(
        Q(expires_at__isnull=True) | Q(expires_at__gt=at)
    )


def get_grant(grant_id) -> PatientAccessGrant | None:
    try:
        pk = UUID(str(grant_id))
    except (TypeError, ValueError):
        return None
    return PatientAccessGrant.objects.filter(pk=pk).first()


def active_grant_for(grantee_id, patient_id: str, *, at: datetime | None = None) -> PatientAccessGrant | None:
    return (
        effective_grants(at=at)
        .filter(grantee_account_id=grantee_id, patient_id=str(patient_id))
        .order_by("-granted_at")
        .first()
    )


def list_for_patient(patient_id: str, *, at: datetime | None = None) -> list[PatientGrantView]:
    """
    Every active (not revoked) grant on a patient, including expired ones,
    flagged with `is_expired` so the caller can show them as lapsed.
    """
    at = at or now()
    grants = list(
        PatientAccessGrant.objects.filter(patient_id=str(patient_id), is_active=True).order_by("-granted_at")
    )

    people = accounts_by_id(
        [g.grantee_account_id for g in grants] + [g.granted_by_account_id for g in grants]
    )

    out: list[PatientGrantView] = []
    for g in grants:
        grantee = people.get(str(g.grantee_account_id))
        granter = people.get(str(g.granted_by_account_id))
        out.append(
            PatientGrantView(
                id=g.id,
                patient_id=g.patient_id,
                grantee_account_id=g.grantee_account_id,
                grantee_name=grantee.display_name if grantee else "Unknown",
                grantee_role=grantee.role if grantee else "unknown",
                grantee_email=grantee.email if grantee else "",
                granted_by_account_id=g.granted_by_account_id,
                granted_by_name=granter.display_name if granter else "Unknown",
                access_level=g.access_level,
                permissions=tuple(g.permissions or ()),
                granted_at=g.granted_at,
                expires_at=g.expires_at,
                reason=g.reason,
                is_expired=g.is_expired(at),
            )
        )
    return out


def list_for_grantee(grantee_id, *, at: datetime | None = None) -> list[EffectiveGrant]:
    qs = effective_grants(at=at).filter(grantee_account_id=grantee_id).order_by("-granted_at")
    return [
        EffectiveGrant(
            patient_id=g.patient_id,
            access_level=g.access_level,
            permissions=tuple(g.permissions or ()),
            expires_at=g.expires_at,
        )
        for g in qs
    ]


def effective_access(account_id, patient_id: str, *, at: datetime | None = None) -> AccessLevel | None:
    """
    Strongest access an account holds on a patient right now.

    - administrator: full
    - owning clinician: full when the ownership resolver says so
    - everyone else: the level of an active, unexpired grant, or None
    """
    account = find_account(account_id)
    if account is None or not account.is_active:
        return None

    if account.role == Role.ADMIN:
        return AccessLevel.FULL

    if account.role in roles.OWNING_CLINICAL_ROLES:
        owns = get_ownership_resolver().owns_patient(account.id, str(patient_id))
        return AccessLevel.FULL if owns else None

    grant = active_grant_for(account.id, patient_id, at=at)
    if grant is None:
        return None
    return AccessLevel(grant.access_level)
