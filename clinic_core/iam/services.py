# backend/clinic_core/iam/services.py
from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID

from django.contrib.auth.hashers import check_password, make_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.utils.timezone import now

from clinic_core.audit.models import AuditAction
from clinic_core.audit.services import AuditService, audit_failures
from clinic_core.common import errors
from clinic_core.common.store import VersionedStore
from clinic_core.iam.models import Account, default_profile, default_settings
from clinic_core.iam.roles import Role, is_role
from clinic_core.iam.selectors import _parse_id, active_admins, email_taken, find_account, find_account_by_email
from clinic_core.iam.sessions import Session, issue_session
from clinic_core.iam.types import PublicAccount

logger = logging.getLogger(__name__)

ACCOUNTS = "accounts"
AUTH = "auth"

UPDATABLE_KEYS = frozenset({"email", "display_name", "role", "profile", "settings"})
INVALID_LOGIN = "Invalid email or password."

_accounts: VersionedStore[Account] = VersionedStore(Account)


# -------------------------
# Validation helpers
# -------------------------
def _clean_email(value: Any) -> str:
    email = str(value or "").strip().lower()
    try:
        validate_email(email)
    except DjangoValidationError:
        raise errors.ValidationError("Enter a valid email address.", details={"email": email}) from None
    return email


def _clean_display_name(value: Any) -> str:
    name = str(value or "").strip()
    if not name:
        raise errors.ValidationError("Display name is required.")
    if len(name) > 255:
        raise errors.ValidationError("Display name must be at most 255 characters.")
    return name


def _clean_role(value: Any) -> str:
    if not is_role(value):
        raise errors.ValidationError(f"Unknown role: {value}")
    return str(value)


def _clean_secret(secret: Any, *, account: Account | None = None) -> str:
    if not isinstance(secret, str) or not secret:
        raise errors.ValidationError("Password is required.")
    try:
        validate_password(secret, user=account)
    except DjangoValidationError as exc:
        raise errors.ValidationError("Password is too weak.", details={"password": list(exc.messages)}) from None
    return secret


def _merged(current: Mapping[str, Any] | None, patch: Any, *, name: str) -> dict:
    if not isinstance(patch, Mapping):
        raise errors.ValidationError(f"{name} must be an object.")
    return {**(current or {}), **patch}


# -------------------------
# Actor / target resolution
# -------------------------
def _require_actor(actor_id) -> Account:
    actor = find_account(actor_id)
    if actor is None or not actor.is_active:
        raise errors.Unauthorized("Your account is not active.")
    return actor


def _require_admin(actor_id, message: str) -> Account:
    actor = _require_actor(actor_id)
    if actor.role != Role.ADMIN:
        raise errors.Forbidden(message)
    return actor


def _get_target(target_id, *, for_update: bool = False) -> Account:
    pk = _parse_id(target_id)
    target = _accounts.get(pk, for_update=for_update) if pk is not None else None
    if target is None:
        raise errors.NotFound("Account not found.")
    return target


def _guard_last_admin(target: Account) -> None:
    """
    Must run inside transaction.atomic(): locks the active admin rows so two
    concurrent demotions cannot both pass the count.
    """
    if target.role != Role.ADMIN or not target.is_active:
        return
    admin_ids = list(active_admins().select_for_update().values_list("id", flat=True))
    if len(admin_ids) <= 1 and target.id in admin_ids:
        raise errors.InvariantViolation("At least one active administrator is required.")


def _same(a, b) -> bool:
    return _parse_id(a) is not None and _parse_id(a) == _parse_id(b)


class AccountService:
    """
    User directory write model.

    Notes:
    - Every operation takes the acting account id explicitly; there is no
      ambient "current user".
    - Writes go through VersionedStore, so a stale read fails with Conflict.
    - Failures are audited outside the transaction (audit_failures wraps
      the atomic block), successes after it commits.
    """

    # -------------------------
    # Create
    # -------------------------
    @staticmethod
    def create(*, actor_id, data: Mapping[str, Any]) -> PublicAccount:
        email = str(data.get("email") or "").strip().lower()

        with audit_failures(
            actor_account_id=actor_id,
            action=AuditAction.CREATE,
            resource_type=ACCOUNTS,
            resource_name=email,
            details="Create account",
        ):
            with transaction.atomic():
                actor = _require_admin(actor_id, "Only administrators can create accounts.")

                email = _clean_email(email)
                display_name = _clean_display_name(data.get("display_name"))
                role = _clean_role(data.get("role"))
                secret = _clean_secret(data.get("secret"))

                if email_taken(email):
                    raise errors.Conflict("An account with this email already exists.")

                try:
                    with transaction.atomic():
                        account = _accounts.add(
                            email=email,
                            credential=make_password(secret),
                            display_name=display_name,
                            role=role,
                            is_active=True,
                            created_by=actor.id,
                            profile=_merged(default_profile(), data.get("profile") or {}, name="profile"),
                            settings=_merged(default_settings(), data.get("settings") or {}, name="settings"),
                        )
                except IntegrityError:
                    # lost a race with a concurrent create of the same email
                    raise errors.Conflict("An account with this email already exists.") from None

        logger.info("Account %s (%s) created by %s", account.id, account.role, actor.id)
        AuditService.record(
            actor_account_id=actor.id,
            action=AuditAction.CREATE,
            resource_type=ACCOUNTS,
            resource_id=account.id,
            resource_name=account.display_name,
            details=f"Created {account.role} account {account.email}",
            payload={"role": account.role, "email": account.email},
        )
        return PublicAccount.from_account(account)

    # -------------------------
    # Update
    # -------------------------
    @staticmethod
    def update(
        *,
        actor_id,
        target_id,
        patch: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> PublicAccount:
        """
        Admin may update anyone; everyone else only themselves.
        `profile` and `settings` are merged key-wise, never replaced.
        """
        with audit_failures(
            actor_account_id=actor_id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=target_id,
            details="Update account",
        ):
            unknown = sorted(set(patch) - UPDATABLE_KEYS)
            if unknown:
                raise errors.ValidationError("Unsupported fields.", details={"fields": unknown})

            with transaction.atomic():
                actor = _require_actor(actor_id)
                is_self = _same(actor.id, target_id)
                if actor.role != Role.ADMIN and not is_self:
                    raise errors.Forbidden("You can only update your own account.")

                target = _get_target(target_id, for_update=True)
                if expected_version is not None and expected_version != target.version:
                    raise errors.Conflict("Account was modified by another request. Reload and retry.")

                changed: list[str] = []

                if "role" in patch:
                    role = _clean_role(patch["role"])
                    if role != target.role:
                        if actor.role != Role.ADMIN:
                            raise errors.Forbidden("Only administrators can change roles.")
                        _guard_last_admin(target)
                        if is_self:
                            raise errors.Forbidden("You cannot change your own role.")
                        target.role = role
                        changed.append("role")

                if "email" in patch:
                    email = _clean_email(patch["email"])
                    if email != target.email:
                        if email_taken(email, exclude_id=target.id):
                            raise errors.Conflict("An account with this email already exists.")
                        target.email = email
                        changed.append("email")

                if "display_name" in patch:
                    target.display_name = _clean_display_name(patch["display_name"])
                    changed.append("display_name")

                if "profile" in patch:
                    target.profile = _merged(target.profile, patch["profile"], name="profile")
                    changed.append("profile")

                if "settings" in patch:
                    target.settings = _merged(target.settings, patch["settings"], name="settings")
                    changed.append("settings")

                if changed:
                    _accounts.put(target, fields=changed)

        logger.info("Account %s updated by %s (%s)", target.id, actor.id, ", ".join(changed) or "no changes")
        AuditService.record(
            actor_account_id=actor.id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=target.id,
            resource_name=target.display_name,
            details=f"Updated account fields: {', '.join(changed) or 'none'}",
            payload={"fields": changed},
        )
        return PublicAccount.from_account(target)

    # -------------------------
    # Activation
    # -------------------------
    @staticmethod
    def deactivate(*, actor_id, target_id) -> PublicAccount:
        with audit_failures(
            actor_account_id=actor_id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=target_id,
            details="Deactivate account",
        ):
            with transaction.atomic():
                actor = _require_admin(actor_id, "Only administrators can deactivate accounts.")
                target = _get_target(target_id, for_update=True)

                # last-admin protection wins over the self check
                _guard_last_admin(target)
                if _same(actor.id, target.id):
                    raise errors.Forbidden("You cannot deactivate your own account.")

                if target.is_active:
                    target.is_active = False
                    _accounts.put(target, fields=["is_active"])

        logger.info("Account %s deactivated by %s", target.id, actor.id)
        AuditService.record(
            actor_account_id=actor.id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=target.id,
            resource_name=target.display_name,
            details="Deactivated account",
        )
        return PublicAccount.from_account(target)

    @staticmethod
    def activate(*, actor_id, target_id) -> PublicAccount:
        with audit_failures(
            actor_account_id=actor_id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=target_id,
            details="Activate account",
        ):
            with transaction.atomic():
                actor = _require_admin(actor_id, "Only administrators can activate accounts.")
                target = _get_target(target_id, for_update=True)

                if not target.is_active:
                    target.is_active = True
                    _accounts.put(target, fields=["is_active"])

        logger.info("Account %s activated by %s", target.id, actor.id)
        AuditService.record(
            actor_account_id=actor.id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=target.id,
            resource_name=target.display_name,
            details="Activated account",
        )
        return PublicAccount.from_account(target)

    # -------------------------
    # Delete
    # -------------------------
    @staticmethod
    def delete(*, actor_id, target_id) -> None:
        with audit_failures(
            actor_account_id=actor_id,
            action=AuditAction.DELETE,
            resource_type=ACCOUNTS,
            resource_id=target_id,
            details="Delete account",
        ):
            with transaction.atomic():
                actor = _require_admin(actor_id, "Only administrators can delete accounts.")
                target = _get_target(target_id, for_update=True)

                _guard_last_admin(target)
                if _same(actor.id, target.id):
                    raise errors.Forbidden("You cannot delete your own account.")
                _accounts.delete(target)

        logger.info("Account %s (%s) deleted by %s", target_id, target.email, actor.id)
        AuditService.record(
            actor_account_id=actor.id,
            action=AuditAction.DELETE,
            resource_type=ACCOUNTS,
            resource_id=target_id,
            resource_name=target.display_name,
            details=f"Deleted account {target.email}",
        )

    # -------------------------
    # Credentials
    # -------------------------
    @staticmethod
    def change_credential(*, actor_id, current_secret: str, new_secret: str) -> None:
        with audit_failures(
            actor_account_id=actor_id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=actor_id,
            details="Change password",
        ):
            with transaction.atomic():
                account = _require_actor(actor_id)
                if not check_password(current_secret or "", account.credential):
                    raise errors.Unauthorized("Current password is incorrect.")

                _clean_secret(new_secret, account=account)
                account.credential = make_password(new_secret)
                _accounts.put(account, fields=["credential"])

        logger.info("Account %s changed its password", account.id)
        AuditService.record(
            actor_account_id=account.id,
            action=AuditAction.UPDATE,
            resource_type=ACCOUNTS,
            resource_id=account.id,
            resource_name=account.display_name,
            details="Changed password",
        )

    # -------------------------
    # Sessions
    # -------------------------
    @staticmethod
    def authenticate(*, email: str, secret: str) -> Session:
        """
        Exactly one audit entry per call, success or failure.
        The same message is returned for an unknown email and a wrong
        password; an inactive account is only reported after the password
        matched.
        """
        normalized = str(email or "").strip().lower()
        account = find_account_by_email(normalized) if normalized else None

        if account is None:
            make_password(secret or "")  # keep timing close to the known-email path
            logger.warning("Login failed: unknown email")
            AuditService.record(
                actor_account_id=None,
                actor_name=normalized or "Unknown",
                actor_role="unknown",
                action=AuditAction.LOGIN,
                resource_type=AUTH,
                resource_name=normalized,
                details="Failed login attempt",
                is_success=False,
                error_message=INVALID_LOGIN,
            )
            raise errors.Unauthorized(INVALID_LOGIN)

        failure: str | None = None
        if not check_password(secret or "", account.credential):
            failure = INVALID_LOGIN
        elif not account.is_active:
            failure = "Account is deactivated."

        if failure is not None:
            logger.warning("Login failed for account %s: %s", account.id, failure)
            AuditService.record(
                actor_account_id=account.id,
                action=AuditAction.LOGIN,
                resource_type=AUTH,
                resource_id=account.id,
                resource_name=account.display_name,
                details="Failed login attempt",
                is_success=False,
                error_message=failure,
            )
            raise errors.Unauthorized(failure)

        # bookkeeping column: written directly so it never collides with a profile edit
        stamp = now()
        Account.objects.filter(pk=account.pk).update(last_login_at=stamp)
        account.last_login_at = stamp

        session = issue_session(account)

        logger.info("Account %s logged in", account.id)
        AuditService.record(
            actor_account_id=account.id,
            action=AuditAction.LOGIN,
            resource_type=AUTH,
            resource_id=account.id,
            resource_name=account.display_name,
            details="Logged in",
        )
        return session

    @staticmethod
    def logout(*, account_id: UUID | str) -> None:
        """
        Tokens are stateless: logout only leaves a trail. The caller
        discards the token (the API clears the cookie).
        """
        logger.info("Account %s logged out", account_id)
        AuditService.record(
            actor_account_id=account_id,
            action=AuditAction.LOGOUT,
            resource_type=AUTH,
            resource_id=account_id,
            details="Logged out",
        )

    # -------------------------
    # Bootstrap
    # -------------------------
    @staticmethod
    def bootstrap_admin(*, email: str, secret: str, display_name: str) -> PublicAccount:
        """
        First administrator of an empty directory (created_by stays null).
        """
        with transaction.atomic():
            if Account.objects.exists():
                raise errors.Conflict("Accounts already exist; bootstrap only runs on an empty directory.")

            account = _accounts.add(
                email=_clean_email(email),
                credential=make_password(_clean_secret(secret)),
                display_name=_clean_display_name(display_name),
                role=Role.ADMIN,
                is_active=True,
                created_by=None,
            )

        logger.info("Bootstrap administrator %s created", account.id)
        AuditService.record(
            actor_account_id=account.id,
            action=AuditAction.CREATE,
            resource_type=ACCOUNTS,
            resource_id=account.id,
            resource_name=account.display_name,
            details="Bootstrapped administrator account",
        )
        return PublicAccount.from_account(account)
