# backend/dm_core/common/conf.py
from __future__ import annotations

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "API_VERSION": "1.0",
    "QUEUE_DEFAULT_LIMIT": 20,
    "QUEUE_MAX_LIMIT": 100,
    "AUDIT_DEFAULT_PAGE_SIZE": 50,
    "AUDIT_MAX_PAGE_SIZE": 100,
    "VERIFICATION_RATE_WINDOW_HOURS": 24,
    "AUDIT_EXPORT_MAX_ROWS": 5000,
}


def verification_setting(name: str) -> Any:
    """
    Read a key from settings.DM_VERIFICATION, falling back to DEFAULTS.
    Read at call time so pytest's `settings` fixture overrides apply.
    """
    overrides = getattr(settings, "DM_VERIFICATION", None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
