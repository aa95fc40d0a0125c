# backend/clinic_core/tests/test_scenarios.py
"""
End-to-end flows across directory, sharing, authorization and audit.
"""
from datetime import timedelta

import pytest
from django.utils.timezone import now

from clinic_core.audit.models import AuditLogEntry
from clinic_core.audit.selectors import query_by_resource
from clinic_core.common import errors
from clinic_core.conftest import PASSWORD
from clinic_core.iam.authorization import AuthorizationService
from clinic_core.iam.roles import Role
from clinic_core.iam.services import AccountService
from clinic_core.sharing.selectors import effective_access, list_for_grantee
from clinic_core.sharing.services import GrantService

pytestmark = pytest.mark.django_db


def test_limited_share_to_nurse_lapses_without_revoke(admin, doctor, ownership):
    n1 = AccountService.create(
        actor_id=admin.id,
        data={"email": "n1@clinic.test", "secret": PASSWORD, "display_name": "Nurse One", "role": Role.NURSE},
    )
    ownership.assign("P1", doctor.id)

    t0 = now()
    grant = GrantService.grant(
        granted_by=doctor.id,
        patient_id="P1",
        grantee_id=n1.id,
        access_level="limited",
        expires_at=t0 + timedelta(days=7),
        reason="coverage during leave",
        at=t0,
    )

    assert AuthorizationService.can_access_patient(n1.id, "P1", "read", at=t0)
    assert AuthorizationService.can_access_patient(n1.id, "P1", "update", field="blood_pressure", at=t0)
    assert not AuthorizationService.can_access_patient(n1.id, "P1", "update", field="medical_history", at=t0)

    day8 = t0 + timedelta(days=8)
    assert effective_access(n1.id, "P1", at=day8) is None
    assert list_for_grantee(n1.id, at=day8) == []
    assert not AuthorizationService.can_access_patient(n1.id, "P1", "read", at=day8)

    grant.refresh_from_db()
    assert grant.is_active is True

    history = query_by_resource(actor_id=admin.id, resource_type="patient_access", resource_id=grant.id)
    assert [e.action for e in history] == ["create"]


def test_receptionist_documents_by_category(receptionist):
    assert not AuthorizationService.can_access_document(receptionist.id, "doc-1", "read", category="lab-results")
    assert AuthorizationService.can_access_document(receptionist.id, "doc-1", "read", category="insurance")


def test_admin_handover(admin):
    """
    The sole admin cannot step down until a successor is active;
    afterwards the successor can retire the original.
    """
    with pytest.raises(errors.InvariantViolation):
        AccountService.deactivate(actor_id=admin.id, target_id=admin.id)

    successor = AccountService.create(
        actor_id=admin.id,
        data={"email": "a2@clinic.test", "secret": PASSWORD, "display_name": "Second Admin", "role": Role.ADMIN},
    )
    AccountService.deactivate(actor_id=successor.id, target_id=admin.id)

    with pytest.raises(errors.Unauthorized):
        AccountService.authenticate(email=admin.email, secret=PASSWORD)

    failures = AuditLogEntry.objects.filter(is_success=False)
    assert failures.count() == 2  # the blocked deactivation and the refused login


def test_audit_ring_never_exceeds_limit_under_mixed_traffic(nurse):
    for _ in range(520):
        AccountService.authenticate(email=nurse.email, secret=PASSWORD)
        with pytest.raises(errors.Unauthorized):
            AccountService.authenticate(email=nurse.email, secret="wrong-password")

    assert AuditLogEntry.objects.count() == 1000
    assert AuditLogEntry.objects.first().is_success is False
