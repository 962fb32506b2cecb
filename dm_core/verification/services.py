# backend/dm_core/verification/services.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from dm_core.audit.services import AuditService, RequestMeta
from dm_core.entities.models import Entity
from dm_core.entities.selectors import active_entities_for_update
from dm_core.verification.config import AutoApprovalConfig, write_config

logger = logging.getLogger(__name__)

RESOURCE = "Entity"

ACTION_ENABLED = "ENTITY_AUTO_APPROVAL_ENABLED"
ACTION_DISABLED = "ENTITY_AUTO_APPROVAL_DISABLED"
ACTION_CONFIG_UPDATED = "AUTO_APPROVAL_CONFIG_UPDATED"
ACTION_BULK_UPDATED = "BULK_AUTO_APPROVAL_CONFIG_UPDATED"
ACTION_GLOBAL_UPDATED = "GLOBAL_AUTO_APPROVAL_SETTINGS_UPDATED"

# Audit history only ever surfaces these.
AUTO_APPROVAL_ACTIONS = (
    ACTION_ENABLED,
    ACTION_DISABLED,
    ACTION_CONFIG_UPDATED,
    ACTION_BULK_UPDATED,
    ACTION_GLOBAL_UPDATED,
)

EMPTY_IDS_MSG = "At least one entity ID is required"
NO_ENTITIES_MSG = "No valid entities found for update"


def _actor_label(actor) -> str:
    name = actor.get_full_name() if hasattr(actor, "get_full_name") else ""
    return name or str(actor.id)


def _snapshot(entity: Entity, config: AutoApprovalConfig) -> dict[str, Any]:
    return {
        "entityName": entity.name,
        "enabled": entity.auto_approve_enabled,
        "scope": config.scope,
        "conditions": config.conditions(),
    }


class AutoApprovalService:
    """
    Writes per-entity auto-approval configuration.

    Notes:
    - The config lives in Entity.metadata["autoApproval"]; other metadata keys are kept.
    - Disabling only flips auto_approve_enabled; stored conditions survive for re-enable.
    - Exactly one audit row per touched entity, committed with the change.
    """

    @staticmethod
    @transaction.atomic
    def bulk_update(
        *,
        entity_ids: Iterable[UUID],
        enabled: bool,
        scope: str | None = None,
        conditions: Mapping[str, Any] | None = None,
        actor,
        request_meta: RequestMeta | None = None,
    ) -> list[Entity]:
        entity_ids = list(entity_ids or [])
        if not entity_ids:
            raise ValidationError({"entityIds": EMPTY_IDS_MSG})

        entities = list(active_entities_for_update(entity_ids=entity_ids))
        if not entities:
            raise NotFound(NO_ENTITIES_MSG)

        now = timezone.now().isoformat()
        config = AutoApprovalConfig.from_request(scope=scope, conditions=conditions).stamped(
            modified_by=actor.id,
            modified_at=now,
        )
        configured_by = _actor_label(actor)
        total = len(entities)

        for entity in entities:
            previous_enabled = entity.auto_approve_enabled

            entity.metadata = write_config(entity.metadata, config)
            entity.auto_approve_enabled = enabled
            entity.save(update_fields=["metadata", "auto_approve_enabled", "updated_at"])

            AuditService.log(
                action=ACTION_BULK_UPDATED,
                resource=RESOURCE,
                resource_id=entity.id,
                user_id=actor.id,
                new_values={
                    "entityName": entity.name,
                    "previousEnabled": previous_enabled,
                    "newEnabled": enabled,
                    "scope": config.scope,
                    "conditions": config.conditions(),
                    "bulkUpdate": True,
                    "totalEntitiesUpdated": total,
                    "configuredBy": configured_by,
                },
                request_meta=request_meta,
            )

        logger.info("auto-approval bulk update: %s entities enabled=%s by user=%s", total, enabled, actor.id)
        return entities

    @staticmethod
    @transaction.atomic
    def update_entity(
        *,
        entity_id: UUID,
        enabled: bool,
        scope: str | None = None,
        conditions: Mapping[str, Any] | None = None,
        actor,
        request_meta: RequestMeta | None = None,
    ) -> Entity:
        """
        Single-entity toggle / edit.

        Omitting both `scope` and `conditions` keeps the stored rules, so a
        disable followed by a bare enable restores them. Supplying either one
        overwrites the rules; the missing half is taken from what is stored.
        """
        try:
            entity = Entity.objects.select_for_update().get(id=entity_id, is_active=True)
        except (Entity.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("Entity not found.")

        current = AutoApprovalConfig.from_metadata(entity.metadata)
        previous_enabled = entity.auto_approve_enabled
        old_values = _snapshot(entity, current)

        if scope is None and conditions is None:
            candidate = current
        else:
            candidate = AutoApprovalConfig.from_request(
                scope=scope or current.scope,
                conditions=conditions if conditions is not None else current.conditions(),
            )

        rules_changed = not candidate.same_rules_as(current)
        if rules_changed:
            action = ACTION_CONFIG_UPDATED
        elif enabled:
            action = ACTION_ENABLED
        else:
            action = ACTION_DISABLED

        config = candidate.stamped(modified_by=actor.id, modified_at=timezone.now().isoformat())
        entity.metadata = write_config(entity.metadata, config)
        entity.auto_approve_enabled = enabled
        entity.save(update_fields=["metadata", "auto_approve_enabled", "updated_at"])

        new_values = _snapshot(entity, config)
        new_values.update({
            "previousEnabled": previous_enabled,
            "newEnabled": enabled,
            "bulkUpdate": False,
            "configuredBy": _actor_label(actor),
        })

        AuditService.log(
            action=action,
            resource=RESOURCE,
            resource_id=entity.id,
            user_id=actor.id,
            old_values=old_values,
            new_values=new_values,
            request_meta=request_meta,
        )
        logger.info("auto-approval %s for entity %s by user=%s", action, entity.id, actor.id)
        return entity
