# backend/dm_core/assessments/services.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from dm_core.assessments.models import (
    AssessmentType,
    Priority,
    RapidAssessment,
    VerificationStatus,
)
from dm_core.audit.services import AuditService, RequestMeta
from dm_core.common.api.exceptions import ConflictError
from dm_core.entities.models import Entity
from dm_core.verification.config import AutoApprovalConfig
from dm_core.verification.rules import evaluate_assessment

logger = logging.getLogger(__name__)

RESOURCE = "RapidAssessment"

ACTION_AUTO_VERIFIED = "ASSESSMENT_AUTO_VERIFIED"
ACTION_VERIFIED = "ASSESSMENT_VERIFIED"
ACTION_REJECTED = "ASSESSMENT_REJECTED"


@dataclass(frozen=True)
class NewAssessment:
    assessment_type: str
    assessment_date: datetime
    entity_id: UUID
    priority: str = Priority.MEDIUM
    assessor_name: str = ""
    location: str = ""
    coordinates: Optional[dict[str, Any]] = None
    media_attachments: list[Any] = field(default_factory=list)
    payload: dict[str, Any] = field(default_factory=dict)


def _verification_snapshot(a: RapidAssessment) -> dict[str, Any]:
    return {
        "verificationStatus": a.verification_status,
        "verifiedAt": a.verified_at.isoformat() if a.verified_at else None,
        "verifiedBy": a.verified_by_id,
        "rejectionReason": a.rejection_reason or None,
        "rejectionFeedback": a.rejection_feedback or None,
    }


class AssessmentService:
    """
    RapidAssessment write-model operations.

    Notes:
    - create() runs the entity's auto-approval rules; a match lands as AUTO_VERIFIED.
    - verify()/reject() only move SUBMITTED rows; anything else is a 409.
    - Every status change writes one audit row in the same transaction.
    """

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _get_for_update(assessment_id: UUID) -> RapidAssessment:
        try:
            return RapidAssessment.objects.select_for_update().get(id=assessment_id)
        except (RapidAssessment.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Assessment not found.")

    @staticmethod
    def _require_submitted(a: RapidAssessment, verb: str) -> None:
        if a.verification_status != VerificationStatus.SUBMITTED:
            raise ConflictError(
                f"Only submitted assessments can be {verb} (current status: {a.verification_status})."
            )

    # -------------------------
    # Intake
    # -------------------------
    @staticmethod
    @transaction.atomic
    def create(
        *,
        actor,
        data: NewAssessment,
        request_meta: RequestMeta | None = None,
    ) -> RapidAssessment:
        if data.assessment_type not in AssessmentType.values:
            raise ValidationError({"type": "Invalid assessment type."})

        entity = Entity.objects.filter(id=data.entity_id, is_active=True).first()
        if entity is None:
            raise ValidationError({"entityId": "Entity not found or inactive."})

        assessor_name = (data.assessor_name or "").strip() or actor.get_full_name() or actor.get_username()

        decision = evaluate_assessment(
            entity=entity,
            assessment_type=data.assessment_type,
            priority=data.priority,
            media_attachments=data.media_attachments,
        )

        now = timezone.now()
        status = VerificationStatus.AUTO_VERIFIED if decision.eligible else VerificationStatus.SUBMITTED

        a = RapidAssessment.objects.create(
            assessment_type=data.assessment_type,
            assessment_date=data.assessment_date,
            entity=entity,
            assessor=actor,
            assessor_name=assessor_name,
            location=data.location or entity.location or "",
            coordinates=data.coordinates,
            media_attachments=list(data.media_attachments or []),
            payload=dict(data.payload or {}),
            priority=data.priority,
            verification_status=status,
            verified_at=now if decision.eligible else None,
        )

        if decision.eligible:
            config = AutoApprovalConfig.from_metadata(entity.metadata)
            AuditService.log(
                action=ACTION_AUTO_VERIFIED,
                resource=RESOURCE,
                resource_id=a.id,
                user_id=None,
                old_values={"verificationStatus": VerificationStatus.SUBMITTED.value},
                new_values={
                    "verificationStatus": VerificationStatus.AUTO_VERIFIED.value,
                    "verifiedAt": now.isoformat(),
                    "entityId": str(entity.id),
                    "entityName": entity.name,
                    "assessmentType": a.assessment_type,
                    "priority": a.priority,
                    "autoApproval": config.to_metadata(),
                    "submittedBy": actor.id,
                },
                request_meta=request_meta,
            )
            logger.info("assessment %s auto-verified for entity %s", a.id, entity.id)
        else:
            logger.debug("assessment %s queued: %s", a.id, "; ".join(decision.reasons))

        return a

    # -------------------------
    # Coordinator actions
    # -------------------------
    @staticmethod
    @transaction.atomic
    def verify(
        *,
        assessment_id: UUID,
        actor,
        notes: str | None = None,
        request_meta: RequestMeta | None = None,
    ) -> RapidAssessment:
        a = AssessmentService._get_for_update(assessment_id)
        AssessmentService._require_submitted(a, "verified")

        old_values = _verification_snapshot(a)

        a.verification_status = VerificationStatus.VERIFIED
        a.verified_at = timezone.now()
        a.verified_by = actor
        a.rejection_reason = ""
        a.rejection_feedback = ""
        a.save(update_fields=[
            "verification_status",
            "verified_at",
            "verified_by",
            "rejection_reason",
            "rejection_feedback",
            "updated_at",
        ])

        new_values = _verification_snapshot(a)
        if notes:
            new_values["notes"] = notes

        AuditService.log(
            action=ACTION_VERIFIED,
            resource=RESOURCE,
            resource_id=a.id,
            user_id=actor.id,
            old_values=old_values,
            new_values=new_values,
            request_meta=request_meta,
        )
        return a

    @staticmethod
    @transaction.atomic
    def reject(
        *,
        assessment_id: UUID,
        actor,
        reason: str,
        feedback: str | None = None,
        request_meta: RequestMeta | None = None,
    ) -> RapidAssessment:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError({"reason": "Rejection reason is required."})

        a = AssessmentService._get_for_update(assessment_id)
        AssessmentService._require_submitted(a, "rejected")

        old_values = _verification_snapshot(a)

        a.verification_status = VerificationStatus.REJECTED
        a.verified_at = timezone.now()
        a.verified_by = actor
        a.rejection_reason = reason
        a.rejection_feedback = (feedback or "").strip()
        a.save(update_fields=[
            "verification_status",
            "verified_at",
            "verified_by",
            "rejection_reason",
            "rejection_feedback",
            "updated_at",
        ])

        AuditService.log(
            action=ACTION_REJECTED,
            resource=RESOURCE,
            resource_id=a.id,
            user_id=actor.id,
            old_values=old_values,
            new_values=_verification_snapshot(a),
            request_meta=request_meta,
        )
        return a
