# backend/dm_core/assessments/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound

from dm_core.assessments.api.serializers import (
    AssessmentListQuerySerializer,
    RapidAssessmentCreateSerializer,
    RapidAssessmentSerializer,
    RejectRequestSerializer,
    VerifyRequestSerializer,
)
from dm_core.assessments.selectors import AssessmentSelector
from dm_core.assessments.services import AssessmentService
from dm_core.audit.services import RequestMeta
from dm_core.common.api.envelope import success_response
from dm_core.common.api.pagination import parse_page_window
from dm_core.common.conf import verification_setting
from dm_core.common.permissions import RapidAssessmentPermission


class RapidAssessmentViewSet(viewsets.ViewSet):
    """
    Thin API layer:
    - request validation via serializers
    - selectors for reads, AssessmentService for writes
    - success/error envelopes
    """

    permission_classes = [RapidAssessmentPermission]

    def _get_object(self, request, pk):
        try:
            return AssessmentSelector.get_visible(user=request.user, assessment_id=pk)
        except AssessmentSelector.NotFound:
            raise NotFound("Assessment not found.")

    # ----------------------------
    # Reads
    # ----------------------------
    @extend_schema(
        tags=["Rapid Assessments"],
        parameters=[
            OpenApiParameter("type", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("status", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("entity_id", OpenApiTypes.UUID, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("page", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("limit", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: RapidAssessmentSerializer(many=True)},
    )
    def list(self, request):
        q = AssessmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        qs = AssessmentSelector.list_for_user(user=request.user, **q.to_kwargs())
        window = parse_page_window(
            request.query_params,
            size_param="limit",
            default_size=verification_setting("QUEUE_DEFAULT_LIMIT"),
            max_size=verification_setting("QUEUE_MAX_LIMIT"),
        )
        total = qs.count()
        rows = RapidAssessmentSerializer(window.slice(qs), many=True).data
        return success_response(request, rows, pagination=window.describe(total))

    @extend_schema(tags=["Rapid Assessments"], responses={200: RapidAssessmentSerializer})
    def retrieve(self, request, pk=None):
        a = self._get_object(request, pk)
        return success_response(request, RapidAssessmentSerializer(a).data)

    # ----------------------------
    # Intake
    # ----------------------------
    @extend_schema(
        tags=["Rapid Assessments"],
        request=RapidAssessmentCreateSerializer,
        responses={201: RapidAssessmentSerializer},
    )
    def create(self, request):
        s = RapidAssessmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        a = AssessmentService.create(
            actor=request.user,
            data=s.to_new_assessment(),
            request_meta=RequestMeta.from_request(request),
        )
        return success_response(
            request,
            RapidAssessmentSerializer(a).data,
            http_status=status.HTTP_201_CREATED,
            message="Assessment submitted",
        )

    # ----------------------------
    # Verification actions (coordinator)
    # ----------------------------
    @extend_schema(tags=["Rapid Assessments"], request=VerifyRequestSerializer, responses={200: RapidAssessmentSerializer})
    @action(detail=True, methods=["post"])
    def verify(self, request, pk=None):
        s = VerifyRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        a = AssessmentService.verify(
            assessment_id=pk,
            actor=request.user,
            notes=s.validated_data.get("notes") or None,
            request_meta=RequestMeta.from_request(request),
        )
        return success_response(request, RapidAssessmentSerializer(a).data, message="Assessment verified")

    @extend_schema(tags=["Rapid Assessments"], request=RejectRequestSerializer, responses={200: RapidAssessmentSerializer})
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        s = RejectRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        a = AssessmentService.reject(
            assessment_id=pk,
            actor=request.user,
            reason=s.validated_data["reason"],
            feedback=s.validated_data.get("feedback"),
            request_meta=RequestMeta.from_request(request),
        )
        return success_response(request, RapidAssessmentSerializer(a).data, message="Assessment rejected")
