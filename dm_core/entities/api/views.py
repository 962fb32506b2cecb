# backend/dm_core/entities/api/views.py
from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from dm_core.audit.services import RequestMeta
from dm_core.common.api.envelope import success_response
from dm_core.common.api.pagination import paginate
from dm_core.common.permissions import EntityPermission
from dm_core.entities.api.serializers import EntitySerializer
from dm_core.entities.filters import EntityFilter
from dm_core.entities.models import Entity
from dm_core.entities.selectors import active_entities, entity_by_id
from dm_core.verification.api.serializers import (
    AutoApprovalConfigurationSerializer,
    EntityAutoApprovalUpdateSerializer,
)
from dm_core.verification.services import AutoApprovalService


class EntityViewSet(viewsets.ViewSet):
    permission_classes = [EntityPermission]
    serializer_class = EntitySerializer
    queryset = Entity.objects.none()

    def get_object(self, pk) -> Entity:
        try:
            return entity_by_id(entity_id=pk)
        except (Entity.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Entity not found.")

    @extend_schema(
        tags=["Entities"],
        parameters=[
            OpenApiParameter("type", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("name", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("auto_approve_enabled", OpenApiTypes.BOOL, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: EntitySerializer(many=True)},
    )
    def list(self, request):
        f = EntityFilter(request.query_params, queryset=active_entities())
        if not f.is_valid():
            raise ValidationError(f.errors)
        return paginate(request, f.qs, EntitySerializer)

    @extend_schema(tags=["Entities"], responses={200: EntitySerializer})
    def retrieve(self, request, pk=None):
        return Response(EntitySerializer(self.get_object(pk)).data)

    @extend_schema(
        tags=["Entities"],
        request=EntityAutoApprovalUpdateSerializer,
        responses={200: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=["put"], url_path="auto-approval")
    def auto_approval(self, request, pk=None):
        s = EntityAutoApprovalUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        d = s.validated_data

        entity = AutoApprovalService.update_entity(
            entity_id=pk,
            enabled=d["enabled"],
            scope=d.get("scope"),
            conditions=d.get("conditions"),
            actor=request.user,
            request_meta=RequestMeta.from_request(request),
        )
        state = "enabled" if entity.auto_approve_enabled else "disabled"
        return success_response(
            request,
            AutoApprovalConfigurationSerializer(entity).data,
            message=f"Auto-approval {state} for {entity.name}",
        )
