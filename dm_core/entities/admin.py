# backend/dm_core/entities/admin.py
from __future__ import annotations

from django.contrib import admin

from dm_core.entities.models import Entity


@admin.register(Entity)
class EntityAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "type",
        "location",
        "is_active",
        "auto_approve_enabled",
        "updated_at",
    )
    list_filter = ("type", "is_active", "auto_approve_enabled")
    search_fields = ("id", "name", "location")
    ordering = ("name",)

    # auto-approval flag + metadata are owned by AutoApprovalService (audited)
    readonly_fields = ("auto_approve_enabled", "metadata", "created_at", "updated_at")

    fieldsets = (
        ("Entity", {"fields": ("name", "type", "location", "is_active")}),
        ("Coordinates", {"fields": ("latitude", "longitude")}),
        ("Auto-approval", {"fields": ("auto_approve_enabled", "metadata")}),
        ("Audit", {"fields": ("created_at", "updated_at")}),
    )
