# backend/clinic_core/conftest.py
import pytest
from django.contrib.auth.hashers import make_password
from rest_framework.test import APIClient

from clinic_core.iam.models import Account
from clinic_core.iam.ownership import StaticOwnershipResolver
from clinic_core.iam.roles import Role

PASSWORD = "Str0ng-Passphrase!"


@pytest.fixture
def make_account(db):
    """
    Direct ORM factory: bypasses AccountService so fixtures leave no
    audit entries behind.
    """

    def _make(role=Role.NURSE, *, email=None, display_name=None, is_active=True, password=PASSWORD):
        n = Account.objects.count() + 1
        return Account.objects.create(
            email=(email or f"{role}{n}@clinic.test").lower(),
            credential=make_password(password),
            display_name=display_name or f"{str(role).title()} {n}",
            role=role,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def admin(make_account):
    return make_account(Role.ADMIN, email="admin@clinic.test", display_name="Ada Admin")


@pytest.fixture
def doctor(make_account):
    return make_account(Role.DOCTOR, email="doctor@clinic.test", display_name="Dan Doctor")


@pytest.fixture
def nurse(make_account):
    return make_account(Role.NURSE, email="nurse@clinic.test", display_name="Nina Nurse")


@pytest.fixture
def receptionist(make_account):
    return make_account(Role.RECEPTIONIST, email="reception@clinic.test", display_name="Rita Reception")


@pytest.fixture
def ownership(settings):
    """
    Explicit patient -> owner map instead of the trusting default.
    """
    resolver = StaticOwnershipResolver()
    settings.CLINIC_OWNERSHIP_RESOLVER = resolver
    return resolver


@pytest.fixture
def client_for():
    """
    APIClient authenticated as the given account.
    Uses force_authenticate, so it skips the token layer.
    """

    def _client(account):
        c = APIClient()
        c.force_authenticate(user=account)
        return c

    return _client


@pytest.fixture
def api_client(admin, client_for):
    return client_for(admin)
