# backend/dm_core/audit/selectors.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from django.db.models import Q, QuerySet

from dm_core.audit.models import AuditLogEntry


def list_audit_entries(
    *,
    actions: Iterable[str] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    user_id: int | None = None,
    resource: str | None = None,
    resource_id: str | None = None,
    search: str | None = None,
) -> QuerySet[AuditLogEntry]:
    """
    `actions=None` means any action; an empty iterable matches nothing.
    """
    qs = AuditLogEntry.objects.select_related("user")

    if actions is not None:
        qs = qs.filter(action__in=list(actions))
    if start:
        qs = qs.filter(timestamp__gte=start)
    if end:
        qs = qs.filter(timestamp__lte=end)
    if user_id is not None:
        qs = qs.filter(user_id=user_id)
    if resource:
        qs = qs.filter(resource=resource)
    if resource_id:
        qs = qs.filter(resource_id=resource_id)
    if search:
        qs = qs.filter(
            Q(action__icontains=search)
            | Q(resource__icontains=search)
            | Q(resource_id__icontains=search)
            | Q(user__username__icontains=search)
            | Q(user__first_name__icontains=search)
            | Q(user__last_name__icontains=search)
        )

    return qs.order_by("-timestamp", "-id")


def audit_entries_for_resource(*, resource: str, resource_id) -> QuerySet[AuditLogEntry]:
    return list_audit_entries(resource=resource, resource_id=str(resource_id))
