# backend/dm_core/assessments/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from dm_core.assessments.models import AssessmentType, Priority, RapidAssessment, VerificationStatus
from dm_core.assessments.payloads import PAYLOADS, CoordinatesSerializer, validate_payload
from dm_core.assessments.services import NewAssessment


class EntityMiniSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    type = serializers.CharField()
    location = serializers.CharField()


class RapidAssessmentSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source="assessment_type", read_only=True)
    rapidAssessmentDate = serializers.DateTimeField(source="assessment_date", read_only=True)
    entityId = serializers.UUIDField(source="entity_id", read_only=True)
    entity = EntityMiniSerializer(read_only=True)
    assessorId = serializers.IntegerField(source="assessor_id", read_only=True)
    assessorName = serializers.CharField(source="assessor_name", read_only=True)
    mediaAttachments = serializers.JSONField(source="media_attachments", read_only=True)
    verificationStatus = serializers.CharField(source="verification_status", read_only=True)
    verifiedAt = serializers.DateTimeField(source="verified_at", read_only=True, allow_null=True)
    verifiedBy = serializers.SerializerMethodField()
    rejectionReason = serializers.CharField(source="rejection_reason", read_only=True)
    rejectionFeedback = serializers.CharField(source="rejection_feedback", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = RapidAssessment
        fields = [
            "id",
            "type",
            "rapidAssessmentDate",
            "entityId",
            "entity",
            "assessorId",
            "assessorName",
            "location",
            "coordinates",
            "mediaAttachments",
            "payload",
            "verificationStatus",
            "priority",
            "verifiedAt",
            "verifiedBy",
            "rejectionReason",
            "rejectionFeedback",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_verifiedBy(self, obj):
        if obj.verified_by_id:
            return obj.verified_by_id
        # auto-verification has no human actor
        return "system" if obj.verified_at else None


class AssessmentListQuerySerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=AssessmentType.choices, required=False)
    status = serializers.ChoiceField(choices=VerificationStatus.choices, required=False)
    entity_id = serializers.UUIDField(required=False)

    def to_kwargs(self) -> dict:
        d = self.validated_data
        return {
            "assessment_type": d.get("type"),
            "status": d.get("status"),
            "entity_id": d.get("entity_id"),
        }


class RapidAssessmentCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=AssessmentType.choices)
    rapidAssessmentDate = serializers.DateTimeField()
    entityId = serializers.UUIDField()
    assessorName = serializers.CharField(required=False, allow_blank=True, default="")
    location = serializers.CharField(required=False, allow_blank=True, default="")
    coordinates = CoordinatesSerializer(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=Priority.choices, default=Priority.MEDIUM.value)
    mediaAttachments = serializers.ListField(child=serializers.CharField(), required=False, default=list)

    healthData = serializers.JSONField(required=False)
    populationData = serializers.JSONField(required=False)
    foodData = serializers.JSONField(required=False)
    washData = serializers.JSONField(required=False)
    shelterData = serializers.JSONField(required=False)
    securityData = serializers.JSONField(required=False)

    def validate(self, attrs):
        key, _ = PAYLOADS[attrs["type"]]
        attrs["payload"] = validate_payload(attrs["type"], attrs.get(key))

        coords = attrs.get("coordinates")
        if coords:
            # JSON column: keep timestamps as ISO strings
            coords = dict(coords)
            coords["timestamp"] = coords["timestamp"].isoformat()
            attrs["coordinates"] = coords
        return attrs

    def to_new_assessment(self) -> NewAssessment:
        d = self.validated_data
        return NewAssessment(
            assessment_type=d["type"],
            assessment_date=d["rapidAssessmentDate"],
            entity_id=d["entityId"],
            priority=d.get("priority") or Priority.MEDIUM.value,
            assessor_name=d.get("assessorName") or "",
            location=d.get("location") or "",
            coordinates=d.get("coordinates"),
            media_attachments=list(d.get("mediaAttachments") or []),
            payload=d["payload"],
        )


class VerifyRequestSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)


class RejectRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(
        error_messages={
            "required": "Rejection reason is required.",
            "blank": "Rejection reason is required.",
        },
    )
    feedback = serializers.CharField(required=False, allow_blank=True)
