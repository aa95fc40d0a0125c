# backend/clinic_core/iam/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Q, QuerySet

from clinic_core.common import errors
from clinic_core.common.pagination import Page, normalize_paging, paginate_sequence
from clinic_core.iam.models import Account
from clinic_core.iam.roles import SUPPORT_ROLES, Role, is_role
from clinic_core.iam.types import PublicAccount

# Internal lookups return model rows (with the credential hash) and stay
# private to the iam package; everything public returns PublicAccount.


def _parse_id(value) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def find_account(account_id) -> Account | None:
    pk = _parse_id(account_id)
    if pk is None:
        return None
    return Account.objects.filter(pk=pk).first()


def find_account_by_email(email: str) -> Account | None:
    return Account.objects.filter(email__iexact=(email or "").strip()).first()


def email_taken(email: str, *, exclude_id: UUID | None = None) -> bool:
    qs = Account.objects.filter(email__iexact=(email or "").strip())
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


def active_admins() -> QuerySet[Account]:
    return Account.objects.filter(role=Role.ADMIN, is_active=True)


def accounts_by_id(account_ids) -> dict[str, Account]:
    ids = {pk for pk in (_parse_id(a) for a in account_ids) if pk is not None}
    return {str(a.id): a for a in Account.objects.filter(pk__in=ids)}


# -------------------------
# Public read paths
# -------------------------
def get_by_id(account_id) -> PublicAccount | None:
    account = find_account(account_id)
    return PublicAccount.from_account(account) if account else None


def get_by_email(email: str) -> PublicAccount | None:
    account = find_account_by_email(email)
    return PublicAccount.from_account(account) if account else None


def list_accounts(
    *,
    actor_id,
    search: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> Page[PublicAccount]:
    """
    Administrator-only directory listing, newest accounts first.
    """
    actor = find_account(actor_id)
    if actor is None or not actor.is_active or actor.role != Role.ADMIN:
        raise errors.Forbidden("Only administrators can view all accounts.")

    page, page_size = normalize_paging(page, page_size, default_size=10)

    qs = Account.objects.all()
    if role:
        if not is_role(role):
            raise errors.ValidationError(f"Unknown role: {role}")
        qs = qs.filter(role=role)
    if is_active is not None:
        qs = qs.filter(is_active=is_active)

    sv = (search or "").strip()
    if sv:
        qs = qs.filter(Q(display_name__icontains=sv) | Q(email__icontains=sv))

    qs = qs.order_by("-created_at", "email")
    result = paginate_sequence(qs, total=qs.count(), page=page, page_size=page_size)
    return Page(
        items=[PublicAccount.from_account(a) for a in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


def list_sharable_accounts() -> list[PublicAccount]:
    """
    Active support-role accounts that patient access can be delegated to.
    """
    qs = Account.objects.filter(role__in=[str(r) for r in SUPPORT_ROLES], is_active=True).order_by("display_name")
    return [PublicAccount.from_account(a) for a in qs]


def get_account(*, actor_id, account_id) -> PublicAccount:
    """
    Administrators read anyone; everyone else only themselves.
    """
    actor = find_account(actor_id)
    if actor is None or not actor.is_active:
        raise errors.Unauthorized("Your account is not active.")

    target = find_account(account_id)
    if actor.role != Role.ADMIN and (target is None or target.id != actor.id):
        raise errors.Forbidden("You can only view your own account.")
    if target is None:
        raise errors.NotFound("Account not found.")
    return PublicAccount.from_account(target)
