# backend/dm_core/assessments/admin.py
from __future__ import annotations

from django.contrib import admin

from dm_core.assessments.models import RapidAssessment


@admin.register(RapidAssessment)
class RapidAssessmentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "assessment_type",
        "entity",
        "assessor_name",
        "priority",
        "verification_status",
        "assessment_date",
        "verified_at",
        "created_at",
    )
    list_filter = ("assessment_type", "verification_status", "priority")
    search_fields = ("id", "assessor_name", "location", "entity__name")
    ordering = ("-created_at",)

    # status transitions go through AssessmentService (audited)
    readonly_fields = (
        "verification_status",
        "verified_at",
        "verified_by",
        "rejection_reason",
        "rejection_feedback",
        "created_at",
        "updated_at",
    )

    list_select_related = ("entity", "assessor")

    fieldsets = (
        ("Assessment", {"fields": ("assessment_type", "assessment_date", "entity", "priority")}),
        ("Assessor", {"fields": ("assessor", "assessor_name", "location", "coordinates")}),
        ("Body", {"fields": ("payload", "media_attachments")}),
        ("Verification", {"fields": (
            "verification_status",
            "verified_at",
            "verified_by",
            "rejection_reason",
            "rejection_feedback",
        )}),
        ("Audit", {"fields": ("created_at", "updated_at")}),
    )
