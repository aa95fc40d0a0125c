# backend/clinic_core/iam/tests/test_accounts_api.py
import pytest

from clinic_core.conftest import PASSWORD
from clinic_core.iam.roles import Role

pytestmark = pytest.mark.django_db


def test_admin_lists_accounts_paginated(api_client, nurse, doctor, receptionist):
    res = api_client.get("/api/v1/accounts/?page_size=2")
    assert res.status_code == 200

    body = res.json()
    assert body["count"] == 4
    assert body["page_size"] == 2
    assert body["total_pages"] == 2
    assert len(body["results"]) == 2
    assert all("credential" not in r for r in body["results"])


def test_list_filters(api_client, nurse, doctor, make_account):
    make_account(Role.NURSE, email="old@clinic.test", display_name="Olga Old", is_active=False)

    res = api_client.get("/api/v1/accounts/?role=nurse&is_active=true")
    assert [r["email"] for r in res.json()["results"]] == [nurse.email]

    res = api_client.get("/api/v1/accounts/?search=olga")
    assert [r["email"] for r in res.json()["results"]] == ["old@clinic.test"]


def test_create_via_api(api_client):
    res = api_client.post(
        "/api/v1/accounts/",
        {
            "email": "New@Clinic.test",
            "password": PASSWORD,
            "display_name": "New Nurse",
            "role": "nurse",
        },
        format="json",
    )
    assert res.status_code == 201
    assert res.json()["email"] == "new@clinic.test"


def test_duplicate_create_is_409(api_client, nurse):
    res = api_client.post(
        "/api/v1/accounts/",
        {"email": nurse.email.upper(), "password": PASSWORD, "display_name": "Dup", "role": "nurse"},
        format="json",
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "conflict"


def test_retrieve_self_or_admin(nurse, receptionist, client_for):
    assert client_for(nurse).get(f"/api/v1/accounts/{nurse.id}/").status_code == 200
    assert client_for(nurse).get(f"/api/v1/accounts/{receptionist.id}/").status_code == 403


def test_partial_update_with_stale_version(api_client, nurse):
    res = api_client.patch(f"/api/v1/accounts/{nurse.id}/", {"display_name": "A", "version": 1}, format="json")
    assert res.status_code == 200
    assert res.json()["version"] == 2

    res = api_client.patch(f"/api/v1/accounts/{nurse.id}/", {"display_name": "B", "version": 1}, format="json")
    assert res.status_code == 409


def test_deactivate_activate_destroy(api_client, nurse):
    assert api_client.post(f"/api/v1/accounts/{nurse.id}/deactivate/").json()["is_active"] is False
    assert api_client.post(f"/api/v1/accounts/{nurse.id}/activate/").json()["is_active"] is True
    assert api_client.delete(f"/api/v1/accounts/{nurse.id}/").status_code == 204


def test_sole_admin_self_deactivate_is_409(api_client, admin):
    res = api_client.post(f"/api/v1/accounts/{admin.id}/deactivate/")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "invariant_violation"


def test_sharable_accounts(doctor, nurse, receptionist, make_account, client_for):
    make_account(Role.NURSE, is_active=False)

    res = client_for(doctor).get("/api/v1/accounts/sharable/")
    assert res.status_code == 200
    assert {r["id"] for r in res.json()} == {str(nurse.id), str(receptionist.id)}

    assert client_for(nurse).get("/api/v1/accounts/sharable/").status_code == 403
