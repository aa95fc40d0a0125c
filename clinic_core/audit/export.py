# backend/clinic_core/audit/export.py
from __future__ import annotations

import csv
import io
from typing import Iterable

from clinic_core.audit.models import AuditLogEntry

CSV_HEADERS = [
    "Timestamp",
    "User",
    "Role",
    "Action",
    "Resource",
    "Resource Name",
    "Details",
    "Success",
]


def _row(entry: AuditLogEntry) -> list[str]:
    return [
        entry.timestamp.isoformat(),
        entry.actor_name,
        entry.actor_role,
        entry.action,
        entry.resource_type,
        entry.resource_name,
        entry.details,
        "Yes" if entry.is_success else "No",
    ]


def export_csv(entries: Iterable[AuditLogEntry]) -> str:
    """
    Pure transform of already-fetched entries into CSV text.

    No authorization check here: callers obtain `entries` through
    selectors.query(), which is already administrator-gated.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entry in entries:
        writer.writerow(_row(entry))
    return buf.getvalue()
