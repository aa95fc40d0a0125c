# backend/clinic_core/iam/api/auth.py

from __future__ import annotations

from datetime import timedelta
from typing import Any

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_core.iam.api.serializers import DetailSerializer, LoginRequestSerializer, LoginResponseSerializer
from clinic_core.iam.auth import session_cookie_name
from clinic_core.iam.services import AccountService


def _seconds(value: Any) -> int:
    """
    JWT lifetime setting in seconds (timedelta or number).
    """
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return int(value)


def _set_session_cookie(response: Response, *, token: str) -> None:
    jwt_cfg = getattr(settings, "SIMPLE_JWT", {}) or {}
    response.set_cookie(
        session_cookie_name(),
        token,
        max_age=_seconds(jwt_cfg.get("ACCESS_TOKEN_LIFETIME", timedelta(hours=24))),
        httponly=True,
        secure=bool(jwt_cfg.get("AUTH_COOKIE_SECURE", False)),
        samesite=jwt_cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
        path="/",
    )


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(
        request=LoginRequestSerializer,
        responses={200: LoginResponseSerializer},
        tags=["IAM"],
    )
    def post(self, request):
        ser = LoginRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        session = AccountService.authenticate(
            email=ser.validated_data["email"],
            secret=ser.validated_data["password"],
        )

        res = Response(LoginResponseSerializer(session).data, status=status.HTTP_200_OK)
        _set_session_cookie(res, token=session.token)
        return res


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=None,
        responses={200: DetailSerializer},
        tags=["IAM"],
    )
    def post(self, request):
        AccountService.logout(account_id=request.user.id)

        res = Response({"detail": "logged out"}, status=status.HTTP_200_OK)
        res.delete_cookie(session_cookie_name(), path="/")
        return res
