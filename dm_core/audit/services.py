# backend/dm_core/audit/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import transaction

from dm_core.audit.models import AuditLogEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestMeta:
    """
    Caller fingerprint stored alongside each audit row.
    """
    ip_address: str | None = None
    user_agent: str = ""

    @classmethod
    def from_request(cls, request) -> "RequestMeta":
        if request is None:
            return cls()
        meta = getattr(request, "META", {}) or {}
        forwarded = meta.get("HTTP_X_FORWARDED_FOR") or ""
        ip = forwarded.split(",")[0].strip() if forwarded else meta.get("REMOTE_ADDR")
        return cls(ip_address=ip or None, user_agent=meta.get("HTTP_USER_AGENT", "") or "")


class AuditService:
    """
    Central audit writer. Rows are append-only (see AuditLogEntry).
    Callers invoke this inside their own transaction so the audit row
    commits or rolls back with the change it describes.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        action: str,
        resource: str,
        resource_id: Any,
        user_id: int | None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        request_meta: RequestMeta | None = None,
    ) -> AuditLogEntry:
        request_meta = request_meta or RequestMeta()

        entry = AuditLogEntry.objects.create(
            user_id=user_id,  # ✅ int | None (None = system)
            action=action,
            resource=resource,
            resource_id=str(resource_id),
            old_values=old_values,
            new_values=new_values,
            ip_address=request_meta.ip_address,
            user_agent=request_meta.user_agent,
        )
        logger.info("audit %s %s:%s by user=%s", action, resource, resource_id, user_id)
        return entry
