# backend/dm_core/common/api/envelope.py
from __future__ import annotations

import uuid
from typing import Any

from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response

from dm_core.common.conf import verification_setting


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware, views and the DRF exception handler.
    DRF Request proxies attribute reads to the wrapped HttpRequest, so an id
    minted by RequestIdMiddleware is picked up here.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_meta(request=None, **extra: Any) -> dict[str, Any]:
    meta = {
        "timestamp": timezone.now().isoformat(),
        "version": verification_setting("API_VERSION"),
        "requestId": ensure_request_id(request),
    }
    meta.update(extra)
    return meta


def success_response(
    request,
    data: Any,
    *,
    http_status: int = status.HTTP_200_OK,
    meta: dict[str, Any] | None = None,
    **sections: Any,
) -> Response:
    """
    Canonical success envelope:
      { success: true, data, <pagination|summary|queueDepth|...>, meta }

    Keyword sections with a None value are omitted, so callers can pass
    `pagination=None` for unpaginated payloads.
    """
    body: dict[str, Any] = {"success": True, "data": data}
    for key, value in sections.items():
        if value is not None:
            body[key] = value
    body["meta"] = build_meta(request, **(meta or {}))
    return Response(body, status=http_status)
