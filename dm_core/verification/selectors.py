# backend/dm_core/verification/selectors.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Sequence
from uuid import UUID

from django.db.models import Case, Count, IntegerField, Min, Q, QuerySet, Value, When
from django.utils import timezone

from dm_core.assessments.models import (
    PENDING_STATUSES,
    PRIORITY_RANK,
    VERIFIED_STATUSES,
    Priority,
    RapidAssessment,
    VerificationStatus,
)
from dm_core.audit.models import AuditLogEntry
from dm_core.audit.selectors import list_audit_entries
from dm_core.common.conf import verification_setting
from dm_core.entities.models import Entity
from dm_core.entities.selectors import active_entities
from dm_core.verification.services import AUTO_APPROVAL_ACTIONS

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Auto-approval configuration list
# ----------------------------------------------------------------------

def list_configurations(*, entity_type: str | None = None, enabled_only: bool = False) -> tuple[list[Entity], dict[str, int]]:
    """
    Active entities annotated with `auto_verified_count`, enabled first then by name.
    """
    qs = active_entities(entity_type=entity_type)
    if enabled_only:
        qs = qs.filter(auto_approve_enabled=True)

    qs = qs.annotate(
        auto_verified_count=Count(
            "rapid_assessments",
            filter=Q(rapid_assessments__verification_status=VerificationStatus.AUTO_VERIFIED),
        )
    ).order_by("-auto_approve_enabled", "name")

    entities = list(qs)
    enabled = sum(1 for e in entities if e.auto_approve_enabled)
    auto_verified = sum(e.auto_verified_count for e in entities)

    summary = {
        "totalEntities": len(entities),
        "enabledCount": enabled,
        "disabledCount": len(entities) - enabled,
        "totalAutoVerifiedAssessments": auto_verified,
        # responses are not verified here; the total is assessments only
        "totalAutoVerified": auto_verified,
    }
    return entities, summary


# ----------------------------------------------------------------------
# Verification queue
# ----------------------------------------------------------------------

SORT_FIELDS = {
    "assessmentDate": "assessment_date",
    "createdAt": "created_at",
    "priority": "priority_order",
    "entityName": "entity__name",
    "assessmentType": "assessment_type",
}
DEFAULT_SORT = "assessmentDate"
DEFAULT_QUEUE_STATUSES = (VerificationStatus.SUBMITTED.value,)


def priority_rank_expression() -> Case:
    return Case(
        *[When(priority=p, then=Value(rank)) for p, rank in PRIORITY_RANK.items()],
        default=Value(0),
        output_field=IntegerField(),
    )


@dataclass(frozen=True)
class QueueFilters:
    statuses: Sequence[str] = DEFAULT_QUEUE_STATUSES
    entity_id: UUID | None = None
    assessment_types: Sequence[str] = ()
    priorities: Sequence[str] = ()
    date_from: datetime | None = None
    date_to: datetime | None = None
    assessor_id: int | None = None
    search: str | None = None


@dataclass
class QueueResult:
    items: list[RapidAssessment]
    total: int
    queue_depth: dict[str, int] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)


def _filtered_queue(filters: QueueFilters, *, with_priority: bool = True) -> QuerySet[RapidAssessment]:
    qs = RapidAssessment.objects.all()

    qs = qs.filter(verification_status__in=list(filters.statuses or DEFAULT_QUEUE_STATUSES))
    if filters.entity_id:
        qs = qs.filter(entity_id=filters.entity_id)
    if filters.assessment_types:
        qs = qs.filter(assessment_type__in=list(filters.assessment_types))
    if filters.date_from:
        qs = qs.filter(assessment_date__gte=filters.date_from)
    if filters.date_to:
        qs = qs.filter(assessment_date__lte=filters.date_to)
    if filters.assessor_id is not None:
        qs = qs.filter(assessor_id=filters.assessor_id)
    if filters.search:
        s = filters.search.strip()
        qs = qs.filter(
            Q(assessor_name__icontains=s)
            | Q(entity__name__icontains=s)
            | Q(location__icontains=s)
        )

    if with_priority and filters.priorities:
        qs = qs.filter(priority__in=list(filters.priorities))
    return qs


def _ordering(sort_by: str, sort_order: str) -> list[str]:
    column = SORT_FIELDS.get(sort_by, SORT_FIELDS[DEFAULT_SORT])
    prefix = "" if sort_order == "asc" else "-"

    ordering = [f"{prefix}{column}"]
    if column != "priority_order":
        ordering.append("-priority_order")
    ordering.append("id")
    return ordering


def _queue_depth(filters: QueueFilters) -> dict[str, int]:
    base = _filtered_queue(filters, with_priority=False)
    counts = base.aggregate(
        total=Count("id"),
        critical=Count("id", filter=Q(priority=Priority.CRITICAL)),
        high=Count("id", filter=Q(priority=Priority.HIGH)),
        medium=Count("id", filter=Q(priority=Priority.MEDIUM)),
        low=Count("id", filter=Q(priority=Priority.LOW)),
    )
    return {k: int(v or 0) for k, v in counts.items()}


def _average_wait_minutes(now: datetime) -> int:
    pending = RapidAssessment.objects.filter(verification_status__in=list(PENDING_STATUSES))
    total_seconds = 0.0
    n = 0
    for created_at in pending.values_list("created_at", flat=True).iterator():
        total_seconds += (now - created_at).total_seconds()
        n += 1
    if not n:
        return 0
    return round(total_seconds / n / 60)


def _verification_rate(now: datetime) -> float:
    since = now - timedelta(hours=verification_setting("VERIFICATION_RATE_WINDOW_HOURS"))
    recent = RapidAssessment.objects.filter(created_at__gte=since)
    created = recent.count()
    if not created:
        return 0
    verified = recent.filter(verification_status__in=list(VERIFIED_STATUSES)).count()
    return round(verified / created, 4)


def _oldest_pending() -> str | None:
    oldest = (
        RapidAssessment.objects.filter(verification_status__in=list(PENDING_STATUSES))
        .aggregate(oldest=Min("created_at"))["oldest"]
    )
    return oldest.isoformat() if oldest else None


def _degrade(label: str, fn, default):
    """
    Auxiliary statistics must never fail the queue request.
    """
    try:
        return fn()
    except Exception:
        logger.warning("verification queue: %s computation failed", label, exc_info=True)
        return default


def assessment_queue(
    *,
    filters: QueueFilters,
    sort_by: str = DEFAULT_SORT,
    sort_order: str = "desc",
    offset: int = 0,
    limit: int = 20,
) -> QueueResult:
    qs = (
        _filtered_queue(filters)
        .select_related("entity", "assessor", "verified_by")
        .annotate(priority_order=priority_rank_expression())
        .order_by(*_ordering(sort_by, sort_order))
    )

    total = qs.count()
    items = list(qs[offset:offset + limit])

    now = timezone.now()
    empty_depth = {"total": 0, "critical": 0, "high": 0, "medium": 0, "low": 0}

    return QueueResult(
        items=items,
        total=total,
        queue_depth=_degrade("queueDepth", lambda: _queue_depth(filters), empty_depth),
        metrics={
            "averageWaitTime": _degrade("averageWaitTime", lambda: _average_wait_minutes(now), 0),
            "verificationRate": _degrade("verificationRate", lambda: _verification_rate(now), 0),
            "oldestPending": _degrade("oldestPending", _oldest_pending, None),
        },
    )


# ----------------------------------------------------------------------
# Audit history
# ----------------------------------------------------------------------

ALL = "all"
SYSTEM_USER = "system"


def allowed_actions(requested: str | None) -> list[str]:
    """
    Intersects a caller supplied action with the auto-approval allow-list.
    Anything outside the list yields an empty list (matches nothing).
    """
    if not requested or requested == ALL:
        return list(AUTO_APPROVAL_ACTIONS)
    return [requested] if requested in AUTO_APPROVAL_ACTIONS else []


def audit_history(
    *,
    action: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    user_id: str | None = None,
    resource: str | None = None,
    resource_id: str | None = None,
    search: str | None = None,
) -> QuerySet[AuditLogEntry]:
    qs = list_audit_entries(
        actions=allowed_actions(action),
        start=start,
        end=end,
        resource=None if resource == ALL else resource,
        resource_id=resource_id,
        search=search,
    )

    if user_id and user_id != ALL:
        if user_id == SYSTEM_USER:
            qs = qs.filter(user__isnull=True)
        else:
            qs = qs.filter(user_id=int(user_id))
    return qs


def audit_summary(qs: QuerySet[AuditLogEntry]) -> dict[str, int]:
    base = qs.order_by()
    total = base.count()
    bulk = base.filter(action__contains="BULK").count()
    return {
        "totalEntries": total,
        "uniqueUsers": base.values("user_id").distinct().count(),
        "bulkOperations": bulk,
        "configurationChanges": total - bulk,
    }


def audit_entry_for_rollback(*, entry_id) -> AuditLogEntry | None:
    return (
        AuditLogEntry.objects.filter(id=entry_id, action__in=list(AUTO_APPROVAL_ACTIONS))
        .select_related("user")
        .first()
    )


# ----------------------------------------------------------------------
# Display helpers (best effort over heterogeneous JSON snapshots)
# ----------------------------------------------------------------------

def user_display_name(user) -> str:
    if user is None:
        return "System User"
    return user.get_full_name() or user.get_username() or "System User"


def resource_display_name(resource: str, new_values: Any, old_values: Any) -> str:
    values = new_values if new_values is not None else old_values
    if not isinstance(values, dict):
        values = {}

    if resource == "Entity":
        return values.get("entityName") or values.get("name") or "Unknown Entity"
    if resource == "GlobalSettings":
        return "Global Auto-Approval Settings"
    if resource == "AutoApproval":
        return values.get("entityName") or "Auto-Approval Configuration"
    return resource


def extract_metadata(values: Any) -> dict[str, Any] | None:
    if not isinstance(values, dict):
        return None
    return {
        "bulkUpdate": bool(values.get("bulkUpdate", False)),
        "entitiesAffected": values.get("totalEntitiesUpdated") or values.get("entitiesAffected"),
        "configurationScope": values.get("scope"),
        "reason": values.get("reason"),
    }


def entries_for_export(qs: QuerySet[AuditLogEntry]) -> Iterable[AuditLogEntry]:
    return qs[: verification_setting("AUDIT_EXPORT_MAX_ROWS")]
