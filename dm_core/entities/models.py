# backend/dm_core/entities/models.py
from django.db import models

from dm_core.common.models import UUIDModel


class EntityType(models.TextChoices):
    COMMUNITY = "COMMUNITY", "Community"
    WARD = "WARD", "Ward"
    LGA = "LGA", "Local Government Area"
    STATE = "STATE", "State"
    FACILITY = "FACILITY", "Facility"
    CAMP = "CAMP", "Camp"
    SHELTER = "SHELTER", "Shelter"
    OTHER = "OTHER", "Other"


class Entity(UUIDModel):
    """
    Affected location (camp, facility, community...) that assessments are filed against.

    metadata["autoApproval"] holds the auto-approval conditions; see
    dm_core.verification.config.AutoApprovalConfig. The conditions survive a
    disable so re-enabling restores them.
    """
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=32, choices=EntityType.choices, db_index=True)
    location = models.CharField(max_length=255, blank=True, default="")

    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    is_active = models.BooleanField(default=True, db_index=True)
    auto_approve_enabled = models.BooleanField(default=False, db_index=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "entities_entity"
        indexes = [
            models.Index(fields=["is_active", "auto_approve_enabled", "name"], name="entity_active_auto_name_idx"),
            models.Index(fields=["type", "is_active"], name="entity_type_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.type})"
