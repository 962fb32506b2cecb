# backend/dm_core/entities/selectors.py
from __future__ import annotations

from typing import Iterable
from uuid import UUID

from django.db.models import QuerySet

from dm_core.entities.models import Entity


def active_entities(*, entity_type: str | None = None) -> QuerySet[Entity]:
    qs = Entity.objects.filter(is_active=True)
    if entity_type:
        qs = qs.filter(type=entity_type)
    return qs.order_by("name")


def entity_by_id(*, entity_id: UUID, active_only: bool = True) -> Entity:
    qs = Entity.objects.all()
    if active_only:
        qs = qs.filter(is_active=True)
    return qs.get(id=entity_id)


def active_entities_for_update(*, entity_ids: Iterable[UUID]) -> QuerySet[Entity]:
    """
    Row-locks the matched active entities. Must be called inside transaction.atomic().
    """
    return (
        Entity.objects.select_for_update()
        .filter(id__in=list(entity_ids), is_active=True)
        .order_by("name")
    )
