# backend/clinic_core/iam/api/accounts.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic_core.common import errors
from clinic_core.common.api.pagination import page_params, paginated_response
from clinic_core.iam import roles
from clinic_core.iam.api.serializers import AccountCreateSerializer, AccountSerializer, AccountUpdateSerializer
from clinic_core.iam.selectors import get_account, list_accounts, list_sharable_accounts
from clinic_core.iam.services import AccountService


def _bool_param(request, name: str) -> bool | None:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return None
    value = raw.strip().lower()
    if value in {"1", "true", "yes"}:
        return True
    if value in {"0", "false", "no"}:
        return False
    raise errors.ValidationError(f"{name} must be a boolean")


@extend_schema_view(
    list=extend_schema(
        tags=["Accounts"],
        parameters=[
            OpenApiParameter("search", str, OpenApiParameter.QUERY),
            OpenApiParameter("role", str, OpenApiParameter.QUERY),
            OpenApiParameter("is_active", bool, OpenApiParameter.QUERY),
            OpenApiParameter("page", int, OpenApiParameter.QUERY),
            OpenApiParameter("page_size", int, OpenApiParameter.QUERY),
        ],
    ),
    create=extend_schema(tags=["Accounts"], request=AccountCreateSerializer, responses={201: AccountSerializer}),
    retrieve=extend_schema(tags=["Accounts"], responses={200: AccountSerializer}),
    partial_update=extend_schema(tags=["Accounts"], request=AccountUpdateSerializer, responses={200: AccountSerializer}),
    destroy=extend_schema(tags=["Accounts"], responses={204: None}),
)
class AccountViewSet(viewsets.ViewSet):
    """
    Staff directory. Authorization lives in AccountService / selectors;
    this layer only parses input and renders PublicAccount.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = AccountSerializer
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def list(self, request):
        page, page_size = page_params(request)
        result = list_accounts(
            actor_id=request.user.id,
            search=request.query_params.get("search"),
            role=request.query_params.get("role") or None,
            is_active=_bool_param(request, "is_active"),
            page=page,
            page_size=page_size,
        )
        return paginated_response(result, AccountSerializer)

    def create(self, request):
        ser = AccountCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        data = dict(ser.validated_data)
        data["secret"] = data.pop("password")

        account = AccountService.create(actor_id=request.user.id, data=data)
        return Response(AccountSerializer(account).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        account = get_account(actor_id=request.user.id, account_id=pk)
        return Response(AccountSerializer(account).data, status=status.HTTP_200_OK)

    def partial_update(self, request, pk=None):
        ser = AccountUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        patch = dict(ser.validated_data)
        version = patch.pop("version", None)

        account = AccountService.update(
            actor_id=request.user.id,
            target_id=pk,
            patch=patch,
            expected_version=version,
        )
        return Response(AccountSerializer(account).data, status=status.HTTP_200_OK)

    def destroy(self, request, pk=None):
        AccountService.delete(actor_id=request.user.id, target_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Accounts"], request=None, responses={200: AccountSerializer})
    @action(detail=True, methods=["post"], url_path="activate")
    def activate(self, request, pk=None):
        account = AccountService.activate(actor_id=request.user.id, target_id=pk)
        return Response(AccountSerializer(account).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Accounts"], request=None, responses={200: AccountSerializer})
    @action(detail=True, methods=["post"], url_path="deactivate")
    def deactivate(self, request, pk=None):
        account = AccountService.deactivate(actor_id=request.user.id, target_id=pk)
        return Response(AccountSerializer(account).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Accounts"], responses={200: AccountSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="sharable")
    def sharable(self, request):
        """Support-role accounts a clinician can delegate patient access to."""
        if request.user.role not in roles.DELEGATING_ROLES:
            raise errors.Forbidden("Only doctors or admins can share patient access.")
        return Response(AccountSerializer(list_sharable_accounts(), many=True).data, status=status.HTTP_200_OK)
