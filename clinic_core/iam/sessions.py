# backend/clinic_core/iam/sessions.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from clinic_core.iam.models import Account
from clinic_core.iam.roles import ordered_permissions_for

ACCOUNT_CLAIM = "account_id"
ROLE_CLAIM = "role"


@dataclass(frozen=True)
class SessionAccount:
    id: UUID
    display_name: str
    email: str
    role: str
    profile: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    # computed once at issuance; role changes apply on next login
    permissions: tuple[str, ...] = ()


@dataclass(frozen=True)
class Session:
    account: SessionAccount
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionClaims:
    account_id: UUID
    role: str
    expires_at: datetime


def issue_session(account: Account) -> Session:
    """
    Only called by AccountService.authenticate().

    The token is a signed access token (lifetime = SIMPLE_JWT
    ACCESS_TOKEN_LIFETIME, 24h by default). Nothing is stored server
    side, so there is no revocation list.
    """
    token = AccessToken()
    token[ACCOUNT_CLAIM] = str(account.id)
    token[ROLE_CLAIM] = account.role

    expires_at = datetime.fromtimestamp(token["exp"], tz=timezone.utc)

    snapshot = SessionAccount(
        id=account.id,
        display_name=account.display_name,
        email=account.email,
        role=account.role,
        profile=dict(account.profile or {}),
        settings=dict(account.settings or {}),
        permissions=tuple(ordered_permissions_for(account.role)),
    )
    return Session(account=snapshot, token=str(token), expires_at=expires_at)


def resolve_session(raw_token: str | None, *, at: datetime | None = None) -> SessionClaims | None:
    """
    Passive expiry: an invalid or expired token is simply absent.
    `at` lets callers evaluate expiry at a given instant.
    """
    if not raw_token:
        return None
    try:
        token = AccessToken(raw_token)
        if at is not None:
            token.check_exp(current_time=at)
        account_id = UUID(str(token[ACCOUNT_CLAIM]))
    except (TokenError, KeyError, ValueError):
        return None

    return SessionClaims(
        account_id=account_id,
        role=str(token.get(ROLE_CLAIM, "")),
        expires_at=datetime.fromtimestamp(token["exp"], tz=timezone.utc),
    )
