# backend/clinic_core/iam/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from clinic_core.iam.models import Account


@dataclass(frozen=True)
class PublicAccount:
    """
    Read-side view of an Account. Has no credential field at all, so
    nothing downstream can leak it by accident.
    """
    id: UUID
    email: str
    display_name: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    created_by: UUID | None
    last_login_at: datetime | None
    version: int
    profile: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_account(cls, account: Account) -> "PublicAccount":
        return cls(
            id=account.id,
            email=account.email,
            display_name=account.display_name,
            role=account.role,
            is_active=account.is_active,
            created_at=account.created_at,
            updated_at=account.updated_at,
            created_by=account.created_by,
            last_login_at=account.last_login_at,
            version=account.version,
            profile=dict(account.profile or {}),
            settings=dict(account.settings or {}),
        )
