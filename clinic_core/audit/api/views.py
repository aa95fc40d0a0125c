# backend/clinic_core/audit/api/views.py
from __future__ import annotations

from django.http import HttpResponse
from django.utils.timezone import now
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_core.audit.api.serializers import AuditLogEntrySerializer, AuditQuerySerializer
from clinic_core.audit.export import export_csv
from clinic_core.audit.models import AuditAction
from clinic_core.audit.selectors import AuditFilters, query, query_all, query_by_resource
from clinic_core.audit.services import AuditService
from clinic_core.common.api.pagination import page_params, paginated_response


def _filters(request) -> AuditFilters:
    ser = AuditQuerySerializer(data=request.query_params.dict())
    ser.is_valid(raise_exception=True)
    return AuditFilters(**ser.validated_data)


class AuditEntryListView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Audit"],
        parameters=[AuditQuerySerializer],
        responses={200: AuditLogEntrySerializer(many=True)},
    )
    def get(self, request):
        page, page_size = page_params(request)
        result = query(actor_id=request.user.id, filters=_filters(request), page=page, page_size=page_size)
        return paginated_response(result, AuditLogEntrySerializer)


class AuditExportView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Audit"],
        parameters=[AuditQuerySerializer],
        responses={200: OpenApiResponse(response=OpenApiTypes.STR, description="CSV file")},
    )
    def get(self, request):
        filters = _filters(request)
        entries = query_all(actor_id=request.user.id, filters=filters)

        AuditService.record(
            actor_account_id=request.user.id,
            action=AuditAction.EXPORT,
            resource_type="audit",
            details=f"Exported {len(entries)} audit entries",
        )

        filename = f"audit-logs-{now().date().isoformat()}.csv"
        res = HttpResponse(export_csv(entries), content_type="text/csv; charset=utf-8")
        res["Content-Disposition"] = f'attachment; filename="{filename}"'
        return res


class AuditResourceHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Audit"], responses={200: AuditLogEntrySerializer(many=True)})
    def get(self, request, resource_type: str, resource_id: str):
        entries = query_by_resource(actor_id=request.user.id, resource_type=resource_type, resource_id=resource_id)
        return Response(AuditLogEntrySerializer(entries, many=True).data, status=status.HTTP_200_OK)
