# backend/dm_core/entities/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from dm_core.entities.models import Entity
from dm_core.verification.config import AutoApprovalConfig


class EntitySerializer(serializers.ModelSerializer):
    autoApproveEnabled = serializers.BooleanField(source="auto_approve_enabled", read_only=True)
    isActive = serializers.BooleanField(source="is_active", read_only=True)
    autoApproval = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Entity
        fields = [
            "id",
            "name",
            "type",
            "location",
            "latitude",
            "longitude",
            "isActive",
            "autoApproveEnabled",
            "autoApproval",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_autoApproval(self, obj):
        return AutoApprovalConfig.from_metadata(obj.metadata).to_metadata()
