# backend/dm_core/verification/rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from dm_core.assessments.models import PRIORITY_RANK
from dm_core.verification.config import AutoApprovalConfig


@dataclass(frozen=True)
class RuleDecision:
    eligible: bool
    reasons: tuple[str, ...] = ()


def evaluate_assessment(
    *,
    entity,
    assessment_type: str,
    priority: str,
    media_attachments: Sequence | None,
) -> RuleDecision:
    """
    Decide whether a freshly submitted assessment can skip the coordinator queue.

    All checks are evaluated so the caller can log every reason, not just the first.
    """
    reasons: list[str] = []

    if not entity.auto_approve_enabled:
        reasons.append("auto-approval disabled for entity")

    config = AutoApprovalConfig.from_metadata(entity.metadata)

    if not config.covers_assessments:
        reasons.append(f"scope '{config.scope}' excludes assessments")

    if config.assessment_types and assessment_type not in config.assessment_types:
        reasons.append(f"type {assessment_type} not in allowed types")

    if PRIORITY_RANK.get(priority, 0) > PRIORITY_RANK[config.max_priority]:
        reasons.append(f"priority {priority} above max {config.max_priority}")

    if config.requires_documentation and not media_attachments:
        reasons.append("documentation required but no media attached")

    return RuleDecision(eligible=not reasons, reasons=tuple(reasons))
