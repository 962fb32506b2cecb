# backend/dm_core/verification/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from dm_core.assessments.api.serializers import RapidAssessmentSerializer
from dm_core.assessments.models import AssessmentType, Priority, VerificationStatus
from dm_core.audit.models import AuditLogEntry
from dm_core.entities.models import EntityType
from dm_core.verification.config import (
    ASSESSMENT_TYPES,
    DEFAULT_SCOPE,
    RESPONSE_TYPES,
    SCOPES,
    AutoApprovalConfig,
)
from dm_core.verification.selectors import (
    ALL,
    SORT_FIELDS,
    SYSTEM_USER,
    QueueFilters,
    extract_metadata,
    resource_display_name,
    user_display_name,
)
from dm_core.verification.services import EMPTY_IDS_MSG

DATE_INPUT_FORMATS = ["iso-8601", "%Y-%m-%d"]


class CommaSeparatedListField(serializers.ListField):
    """
    Accepts `?status=A,B`, `?status=A&status=B` or a JSON list.
    """

    def to_internal_value(self, data):
        if isinstance(data, str):
            data = [data]
        items: list[str] = []
        for raw in data or []:
            items.extend(p.strip() for p in str(raw).split(",") if p.strip())
        return super().to_internal_value(items)


# ----------------------------
# Auto-approval
# ----------------------------

class AutoApprovalConditionsSerializer(serializers.Serializer):
    assessmentTypes = serializers.ListField(
        child=serializers.ChoiceField(choices=ASSESSMENT_TYPES), required=False
    )
    responseTypes = serializers.ListField(
        child=serializers.ChoiceField(choices=RESPONSE_TYPES), required=False
    )
    maxPriority = serializers.ChoiceField(choices=Priority.choices, required=False)
    requiresDocumentation = serializers.BooleanField(required=False)


class AutoApprovalListQuerySerializer(serializers.Serializer):
    entityType = serializers.ChoiceField(choices=EntityType.choices, required=False)
    enabledOnly = serializers.BooleanField(required=False, default=False)


class BulkAutoApprovalUpdateSerializer(serializers.Serializer):
    entityIds = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        error_messages={"empty": EMPTY_IDS_MSG, "required": EMPTY_IDS_MSG},
    )
    enabled = serializers.BooleanField()
    scope = serializers.ChoiceField(choices=SCOPES, default=DEFAULT_SCOPE)
    conditions = AutoApprovalConditionsSerializer(required=False)


class EntityAutoApprovalUpdateSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
    scope = serializers.ChoiceField(choices=SCOPES, required=False)
    conditions = AutoApprovalConditionsSerializer(required=False)


class AutoApprovalConfigurationSerializer(serializers.Serializer):
    """
    Entity row + parsed auto-approval config. `stats` only when the
    entity carries the `auto_verified_count` annotation.
    """

    def to_representation(self, entity):
        config = AutoApprovalConfig.from_metadata(entity.metadata)
        row = {
            "entityId": str(entity.id),
            "entityName": entity.name,
            "entityType": entity.type,
            "entityLocation": entity.location or None,
            "enabled": entity.auto_approve_enabled,
            "scope": config.scope,
            "conditions": config.conditions(),
            "lastModifiedBy": config.last_modified_by,
            "lastModified": serializers.DateTimeField().to_representation(entity.updated_at),
        }

        count = getattr(entity, "auto_verified_count", None)
        if count is not None:
            row["stats"] = {
                "autoVerifiedAssessments": count,
                "autoVerifiedResponses": 0,
                "totalAutoVerified": count,
            }
        return row


# ----------------------------
# Queue
# ----------------------------

class QueueQuerySerializer(serializers.Serializer):
    status = CommaSeparatedListField(
        child=serializers.ChoiceField(choices=VerificationStatus.choices), required=False
    )
    entityId = serializers.UUIDField(required=False)
    assessmentType = CommaSeparatedListField(
        child=serializers.ChoiceField(choices=AssessmentType.choices), required=False
    )
    priority = CommaSeparatedListField(
        child=serializers.ChoiceField(choices=Priority.choices), required=False
    )
    dateFrom = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    dateTo = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    assessorId = serializers.IntegerField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    sortBy = serializers.ChoiceField(choices=list(SORT_FIELDS), required=False, default="assessmentDate")
    sortOrder = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")

    def validate(self, attrs):
        start, end = attrs.get("dateFrom"), attrs.get("dateTo")
        if start and end and start > end:
            raise serializers.ValidationError({"dateTo": "dateTo must be on or after dateFrom."})
        return attrs

    def to_filters(self) -> QueueFilters:
        d = self.validated_data
        kwargs = {
            "entity_id": d.get("entityId"),
            "assessment_types": tuple(d.get("assessmentType") or ()),
            "priorities": tuple(d.get("priority") or ()),
            "date_from": d.get("dateFrom"),
            "date_to": d.get("dateTo"),
            "assessor_id": d.get("assessorId"),
            "search": d.get("search") or None,
        }
        if d.get("status"):
            kwargs["statuses"] = tuple(d["status"])
        return QueueFilters(**kwargs)


class QueueItemSerializer(RapidAssessmentSerializer):
    entityName = serializers.CharField(source="entity.name", read_only=True)

    class Meta(RapidAssessmentSerializer.Meta):
        fields = RapidAssessmentSerializer.Meta.fields + ["entityName"]
        read_only_fields = fields


# ----------------------------
# Audit
# ----------------------------

class AuditQuerySerializer(serializers.Serializer):
    startDate = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    endDate = serializers.DateTimeField(required=False, input_formats=DATE_INPUT_FORMATS)
    action = serializers.CharField(required=False, allow_blank=True)
    userId = serializers.CharField(required=False, allow_blank=True)
    resource = serializers.CharField(required=False, allow_blank=True)
    resourceId = serializers.CharField(required=False, allow_blank=True)
    search = serializers.CharField(required=False, allow_blank=True)

    def validate_userId(self, value):
        if value in ("", ALL, SYSTEM_USER) or value.isdigit():
            return value
        raise serializers.ValidationError("Expected a numeric user id, 'system' or 'all'.")

    def to_kwargs(self) -> dict:
        d = self.validated_data
        return {
            "action": d.get("action") or None,
            "start": d.get("startDate"),
            "end": d.get("endDate"),
            "user_id": d.get("userId") or None,
            "resource": d.get("resource") or None,
            "resource_id": d.get("resourceId") or None,
            "search": d.get("search") or None,
        }


class AuditExportQuerySerializer(AuditQuerySerializer):
    format = serializers.ChoiceField(choices=["csv", "json"], required=False, default="csv")


class AuditEntrySerializer(serializers.ModelSerializer):
    userId = serializers.SerializerMethodField()
    userName = serializers.SerializerMethodField()
    resourceId = serializers.CharField(source="resource_id", read_only=True)
    resourceName = serializers.SerializerMethodField()
    oldValues = serializers.SerializerMethodField()
    newValues = serializers.SerializerMethodField()
    ipAddress = serializers.CharField(source="ip_address", read_only=True, allow_null=True)
    userAgent = serializers.CharField(source="user_agent", read_only=True)
    metadata = serializers.SerializerMethodField()

    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "userId",
            "userName",
            "action",
            "resource",
            "resourceId",
            "resourceName",
            "oldValues",
            "newValues",
            "timestamp",
            "ipAddress",
            "userAgent",
            "metadata",
        ]
        read_only_fields = fields

    def get_userId(self, obj):
        return obj.user_id if obj.user_id is not None else SYSTEM_USER

    def get_userName(self, obj):
        return user_display_name(obj.user)

    def get_resourceName(self, obj):
        return resource_display_name(obj.resource, obj.new_values, obj.old_values)

    def get_oldValues(self, obj):
        return obj.old_values or {}

    def get_newValues(self, obj):
        return obj.new_values or {}

    def get_metadata(self, obj):
        return extract_metadata(obj.new_values)
