# backend/clinic_core/audit/selectors.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from django.db.models import Q, QuerySet

from clinic_core.audit.models import AuditLogEntry
from clinic_core.common import errors
from clinic_core.common.pagination import Page, normalize_paging, paginate_sequence
from clinic_core.iam.roles import Role
from clinic_core.iam.selectors import find_account


@dataclass(frozen=True)
class AuditFilters:
    actor_id: UUID | str | None = None
    action: str | None = None
    resource_type: str | None = None
    is_success: bool | None = None
    search: str | None = None
    start: datetime | None = None  # inclusive
    end: datetime | None = None  # inclusive


def _require_admin(actor_id) -> None:
    actor = find_account(actor_id)
    if actor is None or not actor.is_active or actor.role != Role.ADMIN:
        raise errors.Forbidden("Only administrators can view audit logs.")


def _filtered(filters: AuditFilters) -> QuerySet[AuditLogEntry]:
    qs = AuditLogEntry.objects.all()

    if filters.actor_id:
        try:
            actor_uuid = UUID(str(filters.actor_id))
        except ValueError:
            raise errors.ValidationError("actor_id must be a UUID") from None
        qs = qs.filter(actor_account_id=actor_uuid)
    if filters.action:
        qs = qs.filter(action=filters.action)
    if filters.resource_type:
        qs = qs.filter(resource_type=filters.resource_type)
    if filters.is_success is not None:
        qs = qs.filter(is_success=filters.is_success)
    if filters.start is not None:
        qs = qs.filter(timestamp__gte=filters.start)
    if filters.end is not None:
        qs = qs.filter(timestamp__lte=filters.end)

    sv = (filters.search or "").strip()
    if sv:
        qs = qs.filter(
            Q(resource_name__icontains=sv)
            | Q(details__icontains=sv)
            | Q(actor_name__icontains=sv)
        )

    return qs.order_by("-id")


def query(
    *,
    actor_id,
    filters: AuditFilters | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> Page[AuditLogEntry]:
    """
    Administrator-only, newest-first, offset-paginated.
    """
    _require_admin(actor_id)
    if filters is not None and filters.start and filters.end and filters.start > filters.end:
        raise errors.ValidationError("start must not be after end")

    page, page_size = normalize_paging(page, page_size)
    qs = _filtered(filters or AuditFilters())
    return paginate_sequence(qs, total=qs.count(), page=page, page_size=page_size)


def query_by_resource(*, actor_id, resource_type: str, resource_id) -> list[AuditLogEntry]:
    """
    Full retained history of one resource (no time bound), newest first.
    """
    _require_admin(actor_id)
    return list(
        AuditLogEntry.objects.filter(resource_type=resource_type, resource_id=str(resource_id)).order_by("-id")
    )


def query_all(*, actor_id, filters: AuditFilters | None = None) -> list[AuditLogEntry]:
    """
    Unpaginated variant for CSV export; bounded by the retention ring.
    """
    _require_admin(actor_id)
    if filters is not None and filters.start and filters.end and filters.start > filters.end:
        raise errors.ValidationError("start must not be after end")
    return list(_filtered(filters or AuditFilters()))
