# backend/clinic_core/iam/tests/test_auth_and_me.py
import pytest
from rest_framework.test import APIClient

from clinic_core.audit.models import AuditLogEntry
from clinic_core.conftest import PASSWORD

pytestmark = pytest.mark.django_db


def test_me_requires_auth():
    res = APIClient().get("/api/me/")
    assert res.status_code == 401


def test_login_sets_cookie_and_returns_session(nurse, settings):
    c = APIClient()
    res = c.post("/api/auth/login/", {"email": nurse.email, "password": PASSWORD}, format="json")
    assert res.status_code == 200

    body = res.json()
    assert body["account"]["id"] == str(nurse.id)
    assert body["token"]
    assert "credential" not in body["account"]

    cookie = settings.SIMPLE_JWT["AUTH_COOKIE"]
    assert cookie in res.cookies
    assert res.cookies[cookie]["httponly"]


def test_login_failure_envelope(nurse):
    res = APIClient().post("/api/auth/login/", {"email": nurse.email, "password": "nope"}, format="json")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "unauthorized"


def test_cookie_authenticates_me(nurse):
    c = APIClient()
    c.post("/api/auth/login/", {"email": nurse.email, "password": PASSWORD}, format="json")

    # the test client keeps the cookie jar between calls
    res = c.get("/api/v1/me/")
    assert res.status_code == 200
    body = res.json()
    assert body["account"]["email"] == nurse.email
    assert "patients.update.vitals" in body["permissions"]
    assert [n["id"] for n in body["navigation"]][0] == "dashboard"


def test_bearer_authenticates_me(doctor):
    token = APIClient().post(
        "/api/auth/login/", {"email": doctor.email, "password": PASSWORD}, format="json"
    ).json()["token"]

    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    res = c.get("/api/me/")
    assert res.status_code == 200
    assert res.json()["account"]["role"] == "doctor"


def test_deactivated_account_token_is_rejected(nurse, admin):
    token = APIClient().post(
        "/api/auth/login/", {"email": nurse.email, "password": PASSWORD}, format="json"
    ).json()["token"]

    nurse.is_active = False
    nurse.save(update_fields=["is_active"])

    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    assert c.get("/api/me/").status_code == 401


def test_logout_clears_cookie_and_audits(nurse, client_for, settings):
    res = client_for(nurse).post("/api/auth/logout/")
    assert res.status_code == 200

    cookie = settings.SIMPLE_JWT["AUTH_COOKIE"]
    assert res.cookies[cookie].value == ""
    assert AuditLogEntry.objects.first().action == "logout"


def test_me_patch_updates_own_settings(nurse, client_for):
    res = client_for(nurse).patch("/api/v1/me/", {"settings": {"theme": "dark"}}, format="json")
    assert res.status_code == 200
    assert res.json()["account"]["settings"]["theme"] == "dark"


def test_me_patch_role_is_forbidden(nurse, client_for):
    res = client_for(nurse).patch("/api/v1/me/", {"role": "admin"}, format="json")
    assert res.status_code == 403


def test_change_credential_endpoint(nurse, client_for):
    res = client_for(nurse).post(
        "/api/v1/me/credential/",
        {"current_password": PASSWORD, "new_password": "An0ther-Passphrase!"},
        format="json",
    )
    assert res.status_code == 200

    res = APIClient().post(
        "/api/auth/login/", {"email": nurse.email, "password": "An0ther-Passphrase!"}, format="json"
    )
    assert res.status_code == 200


def test_roles_catalog(nurse, client_for):
    res = client_for(nurse).get("/api/v1/roles/")
    assert res.status_code == 200
    ids = [r["id"] for r in res.json()]
    assert ids == ["admin", "doctor", "nurse", "receptionist"]
