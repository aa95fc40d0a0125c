# backend/clinic_core/iam/auth.py

from __future__ import annotations

from django.conf import settings
from django.utils.translation import gettext_lazy as _
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken

from clinic_core.iam.models import Account
from clinic_core.iam.selectors import find_account
from clinic_core.iam.sessions import ACCOUNT_CLAIM

DEFAULT_COOKIE = "clinic_access"


def session_cookie_name() -> str:
    return (getattr(settings, "SIMPLE_JWT", {}) or {}).get("AUTH_COOKIE", DEFAULT_COOKIE)


class SessionTokenAuthentication(JWTAuthentication):
    """
    Authenticate a session token issued by AccountService.authenticate():
      1) Authorization: Bearer <token>
      2) HttpOnly cookie holding the same token

    request.user is the clinic Account (not a django.contrib.auth user).
    """

    def authenticate(self, request):
        # 1) Prefer Authorization header
        header = self.get_header(request)
        if header:
            return super().authenticate(request)

        # 2) Cookie
        raw_token = request.COOKIES.get(session_cookie_name())
        if not raw_token:
            return None

        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token

    def get_user(self, validated_token) -> Account:
        try:
            account_id = validated_token[ACCOUNT_CLAIM]
        except KeyError:
            raise InvalidToken(_("Token contained no recognizable account identification"))

        account = find_account(account_id)
        if account is None:
            raise AuthenticationFailed(_("Account not found"), code="user_not_found")
        if not account.is_active:
            raise AuthenticationFailed(_("Account is inactive"), code="user_inactive")
        return account
