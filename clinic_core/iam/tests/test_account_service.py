# backend/clinic_core/iam/tests/test_account_service.py
import pytest

from clinic_core.audit.models import AuditLogEntry
from clinic_core.common import errors
from clinic_core.conftest import PASSWORD
from clinic_core.iam.models import Account
from clinic_core.iam.roles import Role
from clinic_core.iam.selectors import get_by_email
from clinic_core.iam.services import AccountService

pytestmark = pytest.mark.django_db


def _new(email="n1@clinic.test", role=Role.NURSE, **extra):
    return {"email": email, "secret": PASSWORD, "display_name": "Nora One", "role": role, **extra}


# -------------------------
# Create
# -------------------------
def test_admin_creates_account(admin):
    acc = AccountService.create(actor_id=admin.id, data=_new(email="  N1@Clinic.Test "))

    assert acc.email == "n1@clinic.test"
    assert acc.role == "nurse"
    assert acc.is_active is True
    assert acc.created_by == admin.id
    assert acc.profile["title"] == ""
    assert acc.settings["language"] == "en"
    assert not hasattr(acc, "credential")

    stored = Account.objects.get(pk=acc.id)
    assert stored.credential != PASSWORD

    entry = AuditLogEntry.objects.first()
    assert entry.action == "create"
    assert entry.resource_type == "accounts"
    assert entry.resource_id == str(acc.id)
    assert entry.is_success is True


def test_non_admin_cannot_create_and_failure_is_audited(doctor):
    with pytest.raises(errors.Forbidden):
        AccountService.create(actor_id=doctor.id, data=_new())

    assert not Account.objects.filter(email="n1@clinic.test").exists()
    entry = AuditLogEntry.objects.first()
    assert entry.is_success is False
    assert entry.actor_account_id == doctor.id
    assert entry.error_message


def test_email_uniqueness_is_case_insensitive(admin):
    AccountService.create(actor_id=admin.id, data=_new(email="a@x.com"))
    with pytest.raises(errors.Conflict):
        AccountService.create(actor_id=admin.id, data=_new(email="A@X.com"))


@pytest.mark.parametrize(
    "override",
    [
        {"email": "not-an-email"},
        {"role": "janitor"},
        {"secret": "123"},
        {"display_name": "   "},
    ],
)
def test_create_validation(admin, override):
    with pytest.raises(errors.ValidationError):
        AccountService.create(actor_id=admin.id, data=_new(**override))


# -------------------------
# Update
# -------------------------
def test_self_update_merges_profile_and_settings(nurse):
    acc = AccountService.update(
        actor_id=nurse.id,
        target_id=nurse.id,
        patch={"profile": {"phone": "555-0100"}, "settings": {"theme": "dark"}},
    )

    assert acc.profile["phone"] == "555-0100"
    assert "license_number" in acc.profile
    assert acc.settings == {"email_notifications": True, "theme": "dark", "language": "en"}
    assert acc.version == 2


def test_non_admin_cannot_update_others(nurse, receptionist):
    with pytest.raises(errors.Forbidden):
        AccountService.update(actor_id=nurse.id, target_id=receptionist.id, patch={"display_name": "X"})


def test_non_admin_cannot_change_own_role(nurse):
    with pytest.raises(errors.Forbidden):
        AccountService.update(actor_id=nurse.id, target_id=nurse.id, patch={"role": "doctor"})
    nurse.refresh_from_db()
    assert nurse.role == Role.NURSE


def test_admin_cannot_change_own_role(admin, make_account):
    make_account(Role.ADMIN)
    with pytest.raises(errors.Forbidden):
        AccountService.update(actor_id=admin.id, target_id=admin.id, patch={"role": "doctor"})


def test_demoting_last_admin_is_invariant_violation(admin):
    with pytest.raises(errors.InvariantViolation):
        AccountService.update(actor_id=admin.id, target_id=admin.id, patch={"role": "doctor"})
    admin.refresh_from_db()
    assert admin.role == Role.ADMIN


def test_admin_role_change_keeps_one_admin(admin, make_account):
    second = make_account(Role.ADMIN)
    acc = AccountService.update(actor_id=admin.id, target_id=second.id, patch={"role": "doctor"})
    assert acc.role == "doctor"


def test_unknown_patch_key_rejected(admin, nurse):
    with pytest.raises(errors.ValidationError):
        AccountService.update(actor_id=admin.id, target_id=nurse.id, patch={"is_active": False})


def test_email_change_rechecks_uniqueness(admin, nurse, receptionist):
    with pytest.raises(errors.Conflict):
        AccountService.update(actor_id=admin.id, target_id=nurse.id, patch={"email": receptionist.email.upper()})

    acc = AccountService.update(actor_id=nurse.id, target_id=nurse.id, patch={"email": "Nina@Clinic.Test"})
    assert acc.email == "nina@clinic.test"


def test_stale_expected_version_conflicts(admin, nurse):
    AccountService.update(actor_id=admin.id, target_id=nurse.id, patch={"display_name": "First"})
    with pytest.raises(errors.Conflict):
        AccountService.update(
            actor_id=admin.id, target_id=nurse.id, patch={"display_name": "Second"}, expected_version=1
        )


def test_update_missing_target(admin):
    with pytest.raises(errors.NotFound):
        AccountService.update(
            actor_id=admin.id, target_id="00000000-0000-0000-0000-000000000000", patch={"display_name": "X"}
        )


# -------------------------
# Deactivate / activate / delete
# -------------------------
def test_sole_admin_cannot_be_deactivated_or_deleted_until_second_exists(admin, make_account):
    with pytest.raises(errors.InvariantViolation):
        AccountService.deactivate(actor_id=admin.id, target_id=admin.id)
    with pytest.raises(errors.InvariantViolation):
        AccountService.delete(actor_id=admin.id, target_id=admin.id)

    second = make_account(Role.ADMIN, is_active=False)
    AccountService.activate(actor_id=admin.id, target_id=second.id)

    AccountService.deactivate(actor_id=second.id, target_id=admin.id)
    admin.refresh_from_db()
    assert admin.is_active is False


def test_second_admin_created_then_first_can_be_deleted(admin):
    second = AccountService.create(actor_id=admin.id, data=_new(email="a2@clinic.test", role=Role.ADMIN))

    AccountService.delete(actor_id=second.id, target_id=admin.id)
    assert not Account.objects.filter(pk=admin.id).exists()


def test_inactive_admins_do_not_count(admin, make_account):
    make_account(Role.ADMIN, is_active=False)
    with pytest.raises(errors.InvariantViolation):
        AccountService.deactivate(actor_id=admin.id, target_id=admin.id)


def test_self_deactivate_and_delete_forbidden(admin, make_account):
    make_account(Role.ADMIN)
    with pytest.raises(errors.Forbidden):
        AccountService.deactivate(actor_id=admin.id, target_id=admin.id)
    with pytest.raises(errors.Forbidden):
        AccountService.delete(actor_id=admin.id, target_id=admin.id)


def test_deactivate_and_delete_support_account(admin, nurse):
    acc = AccountService.deactivate(actor_id=admin.id, target_id=nurse.id)
    assert acc.is_active is False

    acc = AccountService.activate(actor_id=admin.id, target_id=nurse.id)
    assert acc.is_active is True

    AccountService.delete(actor_id=admin.id, target_id=nurse.id)
    assert not Account.objects.filter(pk=nurse.id).exists()
    assert AuditLogEntry.objects.first().action == "delete"


def test_delete_missing_target(admin):
    with pytest.raises(errors.NotFound):
        AccountService.delete(actor_id=admin.id, target_id="00000000-0000-0000-0000-000000000000")


def test_non_admin_cannot_deactivate(doctor, nurse):
    with pytest.raises(errors.Forbidden):
        AccountService.deactivate(actor_id=doctor.id, target_id=nurse.id)


# -------------------------
# Credentials
# -------------------------
def test_change_credential(nurse):
    AccountService.change_credential(actor_id=nurse.id, current_secret=PASSWORD, new_secret="An0ther-Passphrase!")
    AccountService.authenticate(email=nurse.email, secret="An0ther-Passphrase!")


def test_change_credential_wrong_current(nurse):
    with pytest.raises(errors.Unauthorized):
        AccountService.change_credential(actor_id=nurse.id, current_secret="nope", new_secret="An0ther-Passphrase!")
    assert AuditLogEntry.objects.first().is_success is False


def test_change_credential_weak_new(nurse):
    with pytest.raises(errors.ValidationError):
        AccountService.change_credential(actor_id=nurse.id, current_secret=PASSWORD, new_secret="short")


# -------------------------
# Bootstrap
# -------------------------
def test_bootstrap_admin_only_on_empty_directory():
    acc = AccountService.bootstrap_admin(email="root@clinic.test", secret=PASSWORD, display_name="Root")
    assert acc.role == "admin"
    assert acc.created_by is None
    assert get_by_email("ROOT@clinic.test").id == acc.id

    with pytest.raises(errors.Conflict):
        AccountService.bootstrap_admin(email="two@clinic.test", secret=PASSWORD, display_name="Two")
