# backend/clinic_core/audit/services.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils.timezone import now

from clinic_core.audit.models import AuditLogEntry
from clinic_core.common.errors import DomainError
from clinic_core.iam.models import Account
from clinic_core.iam.selectors import _parse_id

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = 1000


def retention_limit() -> int:
    return int(getattr(settings, "CLINIC_AUDIT_RETENTION", DEFAULT_RETENTION))


class AuditService:
    """
    Central audit writer. record() is the only write path: there is no
    update and no targeted delete. The only removal is the ring trim
    that keeps the newest `CLINIC_AUDIT_RETENTION` entries.

    Notes:
    - Best-effort: a failure to persist is logged and swallowed, never
      raised into the operation being audited.
    - Each write runs in its own savepoint, so a failed audit insert
      cannot poison the caller's transaction.
    - Written immediately (not on_commit): failure entries must survive
      the caller's rollback, so services call this outside their own
      atomic block.
    """

    @staticmethod
    def record(
        *,
        actor_account_id: UUID | str | None,
        action: str,
        resource_type: str,
        resource_id: Any = "",
        resource_name: str = "",
        details: str = "",
        payload: Optional[Dict[str, Any]] = None,
        is_success: bool = True,
        error_message: str | None = None,
        actor_name: str | None = None,
        actor_role: str | None = None,
        at: datetime | None = None,
    ) -> AuditLogEntry | None:
        actor_pk = _parse_id(actor_account_id) if actor_account_id is not None else None
        if actor_account_id is not None and actor_pk is None:
            # malformed id: keep the raw value readable, never drop the entry
            actor_name = actor_name or str(actor_account_id)

        try:
            if actor_pk is not None and (actor_name is None or actor_role is None):
                actor = Account.objects.filter(pk=actor_pk).only("display_name", "role").first()
                if actor is not None:
                    actor_name = actor_name if actor_name is not None else actor.display_name
                    actor_role = actor_role if actor_role is not None else actor.role

            with transaction.atomic():
                entry = AuditLogEntry.objects.create(
                    actor_account_id=actor_pk,
                    actor_name=actor_name or resource_name or "Unknown",
                    actor_role=actor_role or "unknown",
                    action=str(action),
                    resource_type=resource_type,
                    resource_id="" if resource_id is None else str(resource_id),
                    resource_name=resource_name or "",
                    details=details or "",
                    payload=payload or {},
                    timestamp=at or now(),
                    is_success=is_success,
                    error_message=error_message,
                )
                AuditService._trim()
        except Exception:
            logger.exception(
                "Audit write failed (action=%s resource=%s/%s)", action, resource_type, resource_id
            )
            return None

        return entry

    @staticmethod
    def _trim() -> None:
        limit = retention_limit()
        if AuditLogEntry.objects.count() <= limit:
            return

        stale = list(AuditLogEntry.objects.order_by("-id").values_list("id", flat=True)[limit:])
        if stale:
            AuditLogEntry.objects.filter(id__in=stale).delete()


@contextmanager
def audit_failures(
    *,
    actor_account_id: UUID | str | None,
    action: str,
    resource_type: str,
    resource_id: Any = "",
    resource_name: str = "",
    details: str = "",
) -> Iterator[None]:
    """
    Mirror a failed operation into the audit log, then re-raise.

        with audit_failures(actor_account_id=..., action="delete", resource_type="accounts"):
            ...
    """
    try:
        yield
    except DomainError as exc:
        logger.warning("%s %s denied for actor %s: %s", action, resource_type, actor_account_id, exc.message)
        AuditService.record(
            actor_account_id=actor_account_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            resource_name=resource_name,
            details=details,
            is_success=False,
            error_message=exc.message,
        )
        raise
