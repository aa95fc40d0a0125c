# backend/clinic_core/iam/tests/test_sessions.py
from datetime import timedelta

import pytest
from django.utils.timezone import now

from clinic_core.audit.models import AuditLogEntry
from clinic_core.common import errors
from clinic_core.conftest import PASSWORD
from clinic_core.iam.roles import Role
from clinic_core.iam.services import AccountService
from clinic_core.iam.sessions import resolve_session

pytestmark = pytest.mark.django_db


def test_successful_login_issues_session(nurse):
    session = AccountService.authenticate(email="NURSE@clinic.test", secret=PASSWORD)

    assert session.account.id == nurse.id
    assert session.account.role == "nurse"
    assert "patients.update.vitals" in session.account.permissions
    assert not hasattr(session.account, "credential")

    # 24h window
    delta = session.expires_at - now()
    assert timedelta(hours=23, minutes=59) < delta <= timedelta(hours=24)

    nurse.refresh_from_db()
    assert nurse.last_login_at is not None


@pytest.mark.parametrize(
    "email, secret",
    [
        ("nurse@clinic.test", PASSWORD),
        ("nurse@clinic.test", "wrong-password"),
        ("nobody@clinic.test", PASSWORD),
        ("", ""),
    ],
)
def test_every_attempt_writes_exactly_one_entry(nurse, email, secret):
    before = AuditLogEntry.objects.count()
    try:
        AccountService.authenticate(email=email, secret=secret)
    except errors.Unauthorized:
        pass
    assert AuditLogEntry.objects.count() == before + 1

    entry = AuditLogEntry.objects.first()
    assert entry.action == "login"
    assert entry.resource_type == "auth"


def test_unknown_email_is_recorded_without_actor(nurse):
    with pytest.raises(errors.Unauthorized):
        AccountService.authenticate(email="Ghost@clinic.test", secret=PASSWORD)

    entry = AuditLogEntry.objects.first()
    assert entry.actor_account_id is None
    assert entry.actor_name == "ghost@clinic.test"
    assert entry.is_success is False


def test_wrong_password_is_recorded_with_actor(nurse):
    with pytest.raises(errors.Unauthorized) as exc:
        AccountService.authenticate(email=nurse.email, secret="wrong-password")

    assert exc.value.message == "Invalid email or password."
    entry = AuditLogEntry.objects.first()
    assert entry.actor_account_id == nurse.id
    assert entry.is_success is False


def test_inactive_account_cannot_log_in(make_account):
    gone = make_account(Role.NURSE, email="gone@clinic.test", is_active=False)
    with pytest.raises(errors.Unauthorized) as exc:
        AccountService.authenticate(email=gone.email, secret=PASSWORD)

    assert "deactivated" in exc.value.message
    assert AuditLogEntry.objects.first().error_message == exc.value.message


def test_token_resolves_until_expiry(nurse):
    session = AccountService.authenticate(email=nurse.email, secret=PASSWORD)

    claims = resolve_session(session.token)
    assert claims.account_id == nurse.id
    assert claims.role == "nurse"

    assert resolve_session(session.token, at=now() + timedelta(hours=23)) is not None
    assert resolve_session(session.token, at=now() + timedelta(hours=25)) is None


def test_garbage_tokens_are_absent():
    assert resolve_session(None) is None
    assert resolve_session("") is None
    assert resolve_session("not.a.token") is None


def test_logout_is_audited(nurse):
    AccountService.logout(account_id=nurse.id)

    entry = AuditLogEntry.objects.first()
    assert entry.action == "logout"
    assert entry.actor_account_id == nurse.id
    assert entry.actor_name == nurse.display_name
