# backend/clinic_core/iam/api/roles.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_core.iam.api.serializers import RoleDefinitionSerializer
from clinic_core.iam.roles import all_definitions


class RoleListView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: RoleDefinitionSerializer(many=True)}, tags=["IAM"])
    def get(self, request):
        data = RoleDefinitionSerializer(all_definitions(), many=True).data
        return Response(data, status=status.HTTP_200_OK)
