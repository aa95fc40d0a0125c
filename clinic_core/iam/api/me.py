# backend/clinic_core/iam/api/me.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_core.iam.api.serializers import (
    AccountSerializer,
    AccountUpdateSerializer,
    ChangeCredentialSerializer,
    DetailSerializer,
    MeResponseSerializer,
)
from clinic_core.iam.authorization import AuthorizationService
from clinic_core.iam.roles import ordered_permissions_for
from clinic_core.iam.services import AccountService
from clinic_core.iam.types import PublicAccount


def _me_payload(account: PublicAccount) -> dict:
    return {
        "account": AccountSerializer(account).data,
        "permissions": ordered_permissions_for(account.role),
        "navigation": AuthorizationService.navigation_for(account.role),
    }


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: MeResponseSerializer}, tags=["IAM"])
    def get(self, request):
        """
        Current account, its permission list (fresh, not the login
        snapshot) and the sections it can navigate to.
        """
        return Response(_me_payload(PublicAccount.from_account(request.user)), status=status.HTTP_200_OK)

    @extend_schema(request=AccountUpdateSerializer, responses={200: MeResponseSerializer}, tags=["IAM"])
    def patch(self, request):
        ser = AccountUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        patch = dict(ser.validated_data)
        version = patch.pop("version", None)

        account = AccountService.update(
            actor_id=request.user.id,
            target_id=request.user.id,
            patch=patch,
            expected_version=version,
        )
        return Response(_me_payload(account), status=status.HTTP_200_OK)


class ChangeCredentialView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=ChangeCredentialSerializer, responses={200: DetailSerializer}, tags=["IAM"])
    def post(self, request):
        ser = ChangeCredentialSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        AccountService.change_credential(
            actor_id=request.user.id,
            current_secret=ser.validated_data["current_password"],
            new_secret=ser.validated_data["new_password"],
        )
        return Response({"detail": "password changed"}, status=status.HTTP_200_OK)
