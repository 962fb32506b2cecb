# backend/dm_core/iam/api/schema_serializers.py
"""
Response shapes for the IAM views (documentation only, never used to validate).
"""
from __future__ import annotations

from rest_framework import serializers

from dm_core.common.permissions import ALL_ROLES


class LoginRequestSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(style={"input_type": "password"})


class DetailResponseSerializer(serializers.Serializer):
    detail = serializers.CharField()


class LoginResponseSerializer(DetailResponseSerializer):
    access = serializers.CharField(help_text="Also set as an HttpOnly cookie; returned for bearer clients.")
    roles = serializers.ListField(child=serializers.ChoiceField(choices=ALL_ROLES))


class MeUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    email = serializers.EmailField(allow_blank=True)
    name = serializers.CharField(allow_blank=True)
    is_superuser = serializers.BooleanField()


class MeResponseSerializer(serializers.Serializer):
    user = MeUserSerializer()
    roles = serializers.ListField(child=serializers.ChoiceField(choices=ALL_ROLES))
