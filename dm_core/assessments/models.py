# backend/dm_core/assessments/models.py
from django.conf import settings
from django.db import models

from dm_core.common.models import UUIDModel
from dm_core.entities.models import Entity


class AssessmentType(models.TextChoices):
    HEALTH = "HEALTH", "Health"
    POPULATION = "POPULATION", "Population"
    FOOD = "FOOD", "Food"
    WASH = "WASH", "WASH"
    SHELTER = "SHELTER", "Shelter"
    SECURITY = "SECURITY", "Security"


class VerificationStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    SUBMITTED = "SUBMITTED", "Submitted"
    VERIFIED = "VERIFIED", "Verified"
    AUTO_VERIFIED = "AUTO_VERIFIED", "Auto-verified"
    REJECTED = "REJECTED", "Rejected"


class Priority(models.TextChoices):
    LOW = "LOW", "Low"
    MEDIUM = "MEDIUM", "Medium"
    HIGH = "HIGH", "High"
    CRITICAL = "CRITICAL", "Critical"


# Ordinal used for maxPriority comparisons and priority sorting (never sort on the string).
PRIORITY_RANK = {
    Priority.LOW.value: 1,
    Priority.MEDIUM.value: 2,
    Priority.HIGH.value: 3,
    Priority.CRITICAL.value: 4,
}

TERMINAL_STATUSES = frozenset({
    VerificationStatus.VERIFIED.value,
    VerificationStatus.AUTO_VERIFIED.value,
    VerificationStatus.REJECTED.value,
})

PENDING_STATUSES = frozenset({VerificationStatus.SUBMITTED.value, VerificationStatus.DRAFT.value})

VERIFIED_STATUSES = frozenset({VerificationStatus.VERIFIED.value, VerificationStatus.AUTO_VERIFIED.value})


class AssessmentLockedError(RuntimeError):
    pass


class RapidAssessment(UUIDModel):
    """
    One field assessment filed against an Entity.

    Lifecycle: DRAFT -> SUBMITTED -> {VERIFIED | AUTO_VERIFIED | REJECTED}.
    Terminal rows are frozen: save() refuses to persist anything once the
    row was loaded in a terminal status.
    """
    assessment_type = models.CharField(max_length=32, choices=AssessmentType.choices, db_index=True)
    assessment_date = models.DateTimeField(db_index=True)

    entity = models.ForeignKey(Entity, on_delete=models.PROTECT, related_name="rapid_assessments")
    assessor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rapid_assessments",
    )
    assessor_name = models.CharField(max_length=255)
    location = models.CharField(max_length=255, blank=True, default="")

    # {latitude, longitude, accuracy?, timestamp, captureMethod: GPS|MANUAL}
    coordinates = models.JSONField(null=True, blank=True)
    # photo references (urls / storage keys)
    media_attachments = models.JSONField(default=list, blank=True)
    # type specific body, validated by dm_core.assessments.payloads
    payload = models.JSONField(default=dict, blank=True)

    verification_status = models.CharField(
        max_length=32,
        choices=VerificationStatus.choices,
        default=VerificationStatus.SUBMITTED,
        db_index=True,
    )
    priority = models.CharField(
        max_length=16,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        db_index=True,
    )

    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="verified_assessments",
        null=True,
        blank=True,
    )
    rejection_reason = models.TextField(blank=True, default="")
    rejection_feedback = models.TextField(blank=True, default="")

    class Meta:
        db_table = "assessments_rapid_assessment"
        indexes = [
            models.Index(fields=["verification_status", "priority"], name="ra_status_priority_idx"),
            models.Index(fields=["verification_status", "created_at"], name="ra_status_created_idx"),
            models.Index(fields=["entity", "verification_status"], name="ra_entity_status_idx"),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_status = instance.__dict__.get("verification_status")
        return instance

    @property
    def is_terminal(self) -> bool:
        return self.verification_status in TERMINAL_STATUSES

    def save(self, *args, **kwargs):
        if getattr(self, "_loaded_status", None) in TERMINAL_STATUSES:
            raise AssessmentLockedError(
                f"Assessment {self.pk} is {self._loaded_status} and can no longer be modified."
            )
        super().save(*args, **kwargs)
        self._loaded_status = self.verification_status

    def __str__(self) -> str:
        return f"{self.assessment_type} @ {self.entity_id} ({self.verification_status})"
