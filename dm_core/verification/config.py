# backend/dm_core/verification/config.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from dm_core.assessments.models import AssessmentType, Priority

METADATA_KEY = "autoApproval"

SCOPE_ASSESSMENTS = "assessments"
SCOPE_RESPONSES = "responses"
SCOPE_BOTH = "both"
SCOPES = (SCOPE_ASSESSMENTS, SCOPE_RESPONSES, SCOPE_BOTH)

DEFAULT_SCOPE = SCOPE_ASSESSMENTS
DEFAULT_MAX_PRIORITY = Priority.MEDIUM.value

ASSESSMENT_TYPES = tuple(c.value for c in AssessmentType)
# Responses are configured but not verified by this service.
RESPONSE_TYPES = ("HEALTH", "WASH", "SHELTER", "FOOD", "SECURITY", "POPULATION", "LOGISTICS")


def _str_tuple(value: Any, allowed: tuple[str, ...] | None = None) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    out = []
    for item in value:
        if not isinstance(item, str):
            continue
        if allowed is not None and item not in allowed:
            continue
        if item not in out:
            out.append(item)
    return tuple(out)


@dataclass(frozen=True)
class AutoApprovalConfig:
    """
    Per-entity auto-approval conditions, persisted under
    Entity.metadata["autoApproval"] in camelCase.

    Rows written before `scope` / `responseTypes` existed parse with the
    defaults below. Empty type lists mean "all types".
    """
    scope: str = DEFAULT_SCOPE
    assessment_types: tuple[str, ...] = field(default_factory=tuple)
    response_types: tuple[str, ...] = field(default_factory=tuple)
    max_priority: str = DEFAULT_MAX_PRIORITY
    requires_documentation: bool = False
    last_modified_by: str | None = None
    last_modified_at: str | None = None

    # -------------------------
    # (de)serialization
    # -------------------------
    @classmethod
    def from_metadata(cls, metadata: Any) -> "AutoApprovalConfig":
        """
        Tolerant parse: unknown keys are ignored, malformed values fall back to defaults.
        """
        raw = metadata.get(METADATA_KEY) if isinstance(metadata, Mapping) else None
        if not isinstance(raw, Mapping):
            return cls()

        scope = raw.get("scope")
        max_priority = raw.get("maxPriority")
        modified_by = raw.get("lastModifiedBy")
        modified_at = raw.get("lastModifiedAt")

        return cls(
            scope=scope if scope in SCOPES else DEFAULT_SCOPE,
            assessment_types=_str_tuple(raw.get("assessmentTypes")),
            response_types=_str_tuple(raw.get("responseTypes")),
            max_priority=max_priority if max_priority in Priority.values else DEFAULT_MAX_PRIORITY,
            requires_documentation=bool(raw.get("requiresDocumentation", False)),
            last_modified_by=str(modified_by) if modified_by is not None else None,
            last_modified_at=str(modified_at) if modified_at is not None else None,
        )

    @classmethod
    def from_request(cls, *, scope: str | None, conditions: Mapping[str, Any] | None) -> "AutoApprovalConfig":
        """
        Full overwrite semantics: anything the caller leaves out becomes its default.
        """
        conditions = conditions or {}
        return cls(
            scope=scope or DEFAULT_SCOPE,
            assessment_types=_str_tuple(conditions.get("assessmentTypes")),
            response_types=_str_tuple(conditions.get("responseTypes")),
            max_priority=conditions.get("maxPriority") or DEFAULT_MAX_PRIORITY,
            requires_documentation=bool(conditions.get("requiresDocumentation") or False),
        )

    def conditions(self) -> dict[str, Any]:
        return {
            "assessmentTypes": list(self.assessment_types),
            "responseTypes": list(self.response_types),
            "maxPriority": self.max_priority,
            "requiresDocumentation": self.requires_documentation,
        }

    def to_metadata(self) -> dict[str, Any]:
        return {
            "scope": self.scope,
            **self.conditions(),
            "lastModifiedBy": self.last_modified_by,
            "lastModifiedAt": self.last_modified_at,
        }

    def stamped(self, *, modified_by: Any, modified_at: str) -> "AutoApprovalConfig":
        return replace(
            self,
            last_modified_by=str(modified_by) if modified_by is not None else None,
            last_modified_at=modified_at,
        )

    def same_rules_as(self, other: "AutoApprovalConfig") -> bool:
        return self.scope == other.scope and self.conditions() == other.conditions()

    # -------------------------
    # scope helpers
    # -------------------------
    @property
    def covers_assessments(self) -> bool:
        return self.scope in (SCOPE_ASSESSMENTS, SCOPE_BOTH)

    @property
    def covers_responses(self) -> bool:
        return self.scope in (SCOPE_RESPONSES, SCOPE_BOTH)


def write_config(metadata: Any, config: AutoApprovalConfig) -> dict[str, Any]:
    """
    Returns a copy of `metadata` with the auto-approval sub-object replaced.
    Other metadata keys are kept.
    """
    out = dict(metadata) if isinstance(metadata, Mapping) else {}
    out[METADATA_KEY] = config.to_metadata()
    return out
