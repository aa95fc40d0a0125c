# backend/clinic_core/iam/tests/test_bootstrap_admin_command.py
import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from clinic_core.conftest import PASSWORD
from clinic_core.iam.models import Account

pytestmark = pytest.mark.django_db


def test_bootstrap_creates_first_admin(monkeypatch):
    monkeypatch.setenv("CLINIC_BOOTSTRAP_PASSWORD", PASSWORD)
    call_command("bootstrap_admin", "--email", "Root@Clinic.test")

    acc = Account.objects.get()
    assert acc.email == "root@clinic.test"
    assert acc.role == "admin"


def test_bootstrap_refuses_when_accounts_exist(monkeypatch, nurse):
    monkeypatch.setenv("CLINIC_BOOTSTRAP_PASSWORD", PASSWORD)
    with pytest.raises(CommandError):
        call_command("bootstrap_admin", "--email", "root@clinic.test")


def test_bootstrap_requires_password(monkeypatch):
    monkeypatch.delenv("CLINIC_BOOTSTRAP_PASSWORD", raising=False)
    with pytest.raises(CommandError):
        call_command("bootstrap_admin", "--email", "root@clinic.test")
