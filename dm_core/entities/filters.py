# backend/dm_core/entities/filters.py
from __future__ import annotations

import django_filters

from dm_core.entities.models import Entity, EntityType


class EntityFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(choices=EntityType.choices)
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    auto_approve_enabled = django_filters.BooleanFilter()

    class Meta:
        model = Entity
        fields = ["type", "name", "auto_approve_enabled"]
