# backend/dm_core/assessments/selectors.py
from __future__ import annotations

from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet

from dm_core.assessments.models import RapidAssessment
from dm_core.common.permissions import ROLE_COORDINATOR, user_roles


class AssessmentSelector:
    class NotFound(Exception):
        pass

    @staticmethod
    def base_queryset() -> QuerySet[RapidAssessment]:
        return RapidAssessment.objects.select_related("entity", "assessor", "verified_by")

    @staticmethod
    def visible_to(user) -> QuerySet[RapidAssessment]:
        """
        Coordinators see every assessment; everyone else only their own submissions.
        """
        qs = AssessmentSelector.base_queryset()
        if ROLE_COORDINATOR in user_roles(user):
            return qs
        return qs.filter(assessor_id=getattr(user, "id", None))

    @staticmethod
    def get_visible(*, user, assessment_id: UUID) -> RapidAssessment:
        try:
            return AssessmentSelector.visible_to(user).get(id=assessment_id)
        except (RapidAssessment.DoesNotExist, DjangoValidationError, ValueError):
            raise AssessmentSelector.NotFound()

    @staticmethod
    def list_for_user(
        *,
        user,
        assessment_type: str | None = None,
        status: str | None = None,
        entity_id: UUID | None = None,
    ) -> QuerySet[RapidAssessment]:
        """
        Callers pass already validated values (see AssessmentListQuerySerializer).
        """
        qs = AssessmentSelector.visible_to(user)

        if assessment_type:
            qs = qs.filter(assessment_type=assessment_type)
        if status:
            qs = qs.filter(verification_status=status)
        if entity_id:
            qs = qs.filter(entity_id=entity_id)

        return qs.order_by("-created_at", "-id")
