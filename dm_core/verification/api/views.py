# backend/dm_core/verification/api/views.py
from __future__ import annotations

import csv
import json

from django.http import HttpResponse
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.exceptions import NotFound
from rest_framework.views import APIView

from dm_core.audit.services import RequestMeta
from dm_core.common.api.envelope import success_response
from dm_core.common.api.exceptions import NotImplementedYet
from dm_core.common.api.pagination import parse_page_window
from dm_core.common.conf import verification_setting
from dm_core.common.permissions import CoordinatorPermission
from dm_core.verification.api.serializers import (
    AuditEntrySerializer,
    AuditExportQuerySerializer,
    AuditQuerySerializer,
    AutoApprovalConfigurationSerializer,
    AutoApprovalListQuerySerializer,
    BulkAutoApprovalUpdateSerializer,
    QueueItemSerializer,
    QueueQuerySerializer,
)
from dm_core.verification.selectors import (
    assessment_queue,
    audit_entry_for_rollback,
    audit_history,
    audit_summary,
    entries_for_export,
    list_configurations,
)
from dm_core.verification.services import AutoApprovalService

TAG = "Verification"

EXPORT_COLUMNS = [
    "id",
    "timestamp",
    "userId",
    "userName",
    "action",
    "resource",
    "resourceId",
    "resourceName",
    "ipAddress",
    "userAgent",
    "oldValues",
    "newValues",
]

AUDIT_FILTER_PARAMETERS = [
    OpenApiParameter("startDate", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("endDate", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("action", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("userId", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("resource", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("resourceId", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("search", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
]


class AutoApprovalView(APIView):
    """
    GET  /api/v1/verification/auto-approval
    PUT  /api/v1/verification/auto-approval   (bulk)
    """

    permission_classes = [CoordinatorPermission]

    @extend_schema(
        tags=[TAG],
        parameters=[
            OpenApiParameter("entityType", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("enabledOnly", OpenApiTypes.BOOL, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        q = AutoApprovalListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        entities, summary = list_configurations(
            entity_type=q.validated_data.get("entityType"),
            enabled_only=q.validated_data.get("enabledOnly", False),
        )
        data = AutoApprovalConfigurationSerializer(entities, many=True).data
        return success_response(request, data, summary=summary)

    @extend_schema(tags=[TAG], request=BulkAutoApprovalUpdateSerializer, responses={200: OpenApiTypes.OBJECT})
    def put(self, request):
        s = BulkAutoApprovalUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        d = s.validated_data

        entities = AutoApprovalService.bulk_update(
            entity_ids=d["entityIds"],
            enabled=d["enabled"],
            scope=d["scope"],
            conditions=d.get("conditions"),
            actor=request.user,
            request_meta=RequestMeta.from_request(request),
        )

        count = len(entities)
        return success_response(
            request,
            AutoApprovalConfigurationSerializer(entities, many=True).data,
            message=f"Auto-approval configuration updated for {count} entities",
            meta={"updatedCount": count},
        )


class VerificationQueueView(APIView):
    """
    GET /api/v1/verification/rapid-assessments
    """

    permission_classes = [CoordinatorPermission]

    @extend_schema(
        tags=[TAG],
        parameters=[
            OpenApiParameter("page", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("limit", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("status", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False,
                             description="Comma separated, default SUBMITTED"),
            OpenApiParameter("entityId", OpenApiTypes.UUID, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("assessmentType", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("priority", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("dateFrom", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("dateTo", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("assessorId", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("search", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("sortBy", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("sortOrder", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: QueueItemSerializer(many=True)},
    )
    def get(self, request):
        q = QueueQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        window = parse_page_window(
            request.query_params,
            size_param="limit",
            default_size=verification_setting("QUEUE_DEFAULT_LIMIT"),
            max_size=verification_setting("QUEUE_MAX_LIMIT"),
        )

        result = assessment_queue(
            filters=q.to_filters(),
            sort_by=q.validated_data["sortBy"],
            sort_order=q.validated_data["sortOrder"],
            offset=window.offset,
            limit=window.size,
        )

        return success_response(
            request,
            QueueItemSerializer(result.items, many=True).data,
            pagination=window.describe(result.total),
            queueDepth=result.queue_depth,
            metrics=result.metrics,
        )


class AuditHistoryView(APIView):
    """
    GET /api/v1/verification/audit
    """

    permission_classes = [CoordinatorPermission]

    @extend_schema(
        tags=[TAG],
        parameters=AUDIT_FILTER_PARAMETERS + [
            OpenApiParameter("page", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("pageSize", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: AuditEntrySerializer(many=True)},
    )
    def get(self, request):
        q = AuditQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        window = parse_page_window(
            request.query_params,
            size_param="pageSize",
            default_size=verification_setting("AUDIT_DEFAULT_PAGE_SIZE"),
            max_size=verification_setting("AUDIT_MAX_PAGE_SIZE"),
        )

        qs = audit_history(**q.to_kwargs())
        summary = audit_summary(qs)
        rows = AuditEntrySerializer(window.slice(qs), many=True).data

        return success_response(
            request,
            rows,
            pagination=window.describe(summary["totalEntries"], size_key="pageSize"),
            summary=summary,
        )


class AuditExportView(APIView):
    """
    GET /api/v1/verification/audit/export?format=csv|json
    Same filters as the history endpoint, no pagination (capped).
    """

    permission_classes = [CoordinatorPermission]

    @extend_schema(
        tags=[TAG],
        parameters=AUDIT_FILTER_PARAMETERS + [
            OpenApiParameter("format", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False, enum=["csv", "json"]),
        ],
        responses={(200, "text/csv"): OpenApiTypes.STR, (200, "application/json"): AuditEntrySerializer(many=True)},
    )
    def get(self, request):
        q = AuditExportQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        kwargs = q.to_kwargs()
        rows = AuditEntrySerializer(entries_for_export(audit_history(**kwargs)), many=True).data

        stamp = timezone.now().strftime("%Y%m%d-%H%M%S")
        export_format = q.validated_data["format"]

        if export_format == "json":
            response = HttpResponse(
                json.dumps(rows, default=str, indent=2),
                content_type="application/json",
            )
        else:
            response = HttpResponse(content_type="text/csv")
            writer = csv.DictWriter(response, fieldnames=EXPORT_COLUMNS, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({
                    **row,
                    "oldValues": json.dumps(row["oldValues"], default=str),
                    "newValues": json.dumps(row["newValues"], default=str),
                })

        response["Content-Disposition"] = f'attachment; filename="auto-approval-audit-{stamp}.{export_format}"'
        return response


class AuditRollbackView(APIView):
    """
    POST /api/v1/verification/audit/{id}/rollback

    Placeholder: the entry is looked up (404 outside the auto-approval
    actions) but nothing is reverted.
    """

    permission_classes = [CoordinatorPermission]

    @extend_schema(tags=[TAG], request=None, responses={501: OpenApiTypes.OBJECT})
    def post(self, request, entry_id):
        entry = audit_entry_for_rollback(entry_id=entry_id)
        if entry is None:
            raise NotFound("Audit entry not found.")
        raise NotImplementedYet("Rollback of auto-approval changes is not implemented yet.")
