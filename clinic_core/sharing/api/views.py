# backend/clinic_core/sharing/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_core.common import errors
from clinic_core.iam import roles
from clinic_core.iam.authorization import AuthorizationService
from clinic_core.sharing.api.serializers import (
    EffectiveGrantSerializer,
    GrantCreateSerializer,
    GrantSerializer,
    PatientAccessSerializer,
    PatientGrantSerializer,
)
from clinic_core.sharing.selectors import effective_access, list_for_grantee, list_for_patient
from clinic_core.sharing.services import GrantService


class PatientAccessGrantViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = GrantSerializer
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    @extend_schema(
        tags=["Patient access"],
        parameters=[OpenApiParameter("patient_id", str, OpenApiParameter.QUERY, required=True)],
        responses={200: PatientGrantSerializer(many=True)},
    )
    def list(self, request):
        """
        Grants on one patient. Visible to administrators and to the
        clinician who owns the patient.
        """
        patient_id = (request.query_params.get("patient_id") or "").strip()
        if not patient_id:
            raise errors.ValidationError("patient_id is required")

        actor = request.user
        if actor.role not in roles.DELEGATING_ROLES or not AuthorizationService.can_access_patient(
            actor.id, patient_id, "read"
        ):
            raise errors.Forbidden("You cannot view sharing for this patient.")

        data = PatientGrantSerializer(list_for_patient(patient_id), many=True).data
        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patient access"], request=GrantCreateSerializer, responses={201: GrantSerializer})
    def create(self, request):
        ser = GrantCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        v = ser.validated_data

        grant = GrantService.grant(
            granted_by=request.user.id,
            patient_id=v["patient_id"],
            grantee_id=v["grantee_account_id"],
            access_level=v["access_level"],
            permissions=v.get("permissions"),
            expires_at=v.get("expires_at"),
            reason=v["reason"],
        )
        return Response(GrantSerializer(grant).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Patient access"], responses={200: EffectiveGrantSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="mine")
    def mine(self, request):
        """Patients currently shared with the caller."""
        data = EffectiveGrantSerializer(list_for_grantee(request.user.id), many=True).data
        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patient access"], request=None, responses={200: GrantSerializer})
    @action(detail=True, methods=["post"], url_path="revoke")
    def revoke(self, request, pk=None):
        grant = GrantService.revoke(revoked_by=request.user.id, grant_id=pk)
        return Response(GrantSerializer(grant).data, status=status.HTTP_200_OK)


class PatientAccessView(APIView):
    """
    What the caller may do with one patient: effective level plus the
    field allow-lists the patient screens use to hide or lock inputs.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Patient access"], responses={200: PatientAccessSerializer})
    def get(self, request, patient_id: str):
        actor = request.user
        level = effective_access(actor.id, patient_id)

        if level is None:
            visible: frozenset[str] = frozenset()
            editable: frozenset[str] = frozenset()
            can_update = False
        else:
            visible = AuthorizationService.allowed_fields(actor.role, level)
            can_update = AuthorizationService.can_access_patient(actor.id, patient_id, "update")
            editable = AuthorizationService.editable_fields(actor.role, level) if can_update else frozenset()

        data = PatientAccessSerializer(
            {
                "patient_id": patient_id,
                "access_level": level.value if level is not None else None,
                "can_read": level is not None,
                "can_update": can_update,
                "visible_fields": sorted(visible),
                "editable_fields": sorted(editable),
            }
        ).data
        return Response(data, status=status.HTTP_200_OK)
