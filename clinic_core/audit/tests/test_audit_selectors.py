# backend/clinic_core/audit/tests/test_audit_selectors.py
from datetime import timedelta

import pytest
from django.utils.timezone import now

from clinic_core.audit.selectors import AuditFilters, query, query_all, query_by_resource
from clinic_core.audit.services import AuditService
from clinic_core.common import errors

pytestmark = pytest.mark.django_db


@pytest.fixture
def entries(nurse, doctor):
    t0 = now() - timedelta(days=3)
    AuditService.record(actor_account_id=nurse.id, action="read", resource_type="patients", resource_id="p-1",
                        resource_name="Jane Roe", at=t0)
    AuditService.record(actor_account_id=doctor.id, action="update", resource_type="patients", resource_id="p-1",
                        details="Updated allergies", at=t0 + timedelta(days=1))
    AuditService.record(actor_account_id=doctor.id, action="create", resource_type="prescriptions",
                        resource_id="rx-1", at=t0 + timedelta(days=2))
    AuditService.record(actor_account_id=nurse.id, action="delete", resource_type="patients", resource_id="p-2",
                        is_success=False, error_message="denied", at=t0 + timedelta(days=2))
    return t0


def test_query_is_admin_only(nurse, entries):
    with pytest.raises(errors.Forbidden):
        query(actor_id=nurse.id)
    with pytest.raises(errors.Forbidden):
        query_by_resource(actor_id=nurse.id, resource_type="patients", resource_id="p-1")


def test_newest_first_and_paging(admin, entries):
    page = query(actor_id=admin.id, page=1, page_size=3)
    assert page.total == 4
    assert page.total_pages == 2
    assert [e.action for e in page.items] == ["delete", "create", "update"]

    page2 = query(actor_id=admin.id, page=2, page_size=3)
    assert [e.action for e in page2.items] == ["read"]


def test_filters(admin, nurse, entries):
    by_actor = query(actor_id=admin.id, filters=AuditFilters(actor_id=nurse.id))
    assert {e.action for e in by_actor.items} == {"read", "delete"}

    failed = query(actor_id=admin.id, filters=AuditFilters(is_success=False))
    assert [e.resource_id for e in failed.items] == ["p-2"]

    rx = query(actor_id=admin.id, filters=AuditFilters(resource_type="prescriptions", action="create"))
    assert rx.total == 1


def test_search_covers_name_details_and_actor(admin, entries, doctor):
    assert query(actor_id=admin.id, filters=AuditFilters(search="jane")).total == 1
    assert query(actor_id=admin.id, filters=AuditFilters(search="ALLERG")).total == 1
    assert query(actor_id=admin.id, filters=AuditFilters(search=doctor.display_name.lower())).total == 2


def test_date_range_is_inclusive(admin, entries):
    t0 = entries
    res = query(actor_id=admin.id, filters=AuditFilters(start=t0 + timedelta(days=1), end=t0 + timedelta(days=1)))
    assert [e.action for e in res.items] == ["update"]

    with pytest.raises(errors.ValidationError):
        query(actor_id=admin.id, filters=AuditFilters(start=t0 + timedelta(days=2), end=t0))


def test_invalid_actor_filter(admin, entries):
    with pytest.raises(errors.ValidationError):
        query(actor_id=admin.id, filters=AuditFilters(actor_id="nope"))


def test_by_resource_history(admin, entries):
    history = query_by_resource(actor_id=admin.id, resource_type="patients", resource_id="p-1")
    assert [e.action for e in history] == ["update", "read"]


def test_query_all_is_unpaginated(admin, entries):
    assert len(query_all(actor_id=admin.id)) == 4
