from __future__ import annotations

import logging
import re
import time

from django.utils.deprecation import MiddlewareMixin

from dm_core.common.api.envelope import ensure_request_id

logger = logging.getLogger(__name__)

# Client supplied ids are echoed into logs and headers: keep them boring.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._\-]{1,128}$")


class RequestIdMiddleware(MiddlewareMixin):
    """
    Correlates a request across client, logs and response envelope.

    Behavior:
      - Accepts X-Request-Id from the caller if it looks sane, else mints one.
      - Attaches request.request_id (read by envelope meta.requestId).
      - Echoes the id back as X-Request-Id on every response.
      - Logs method/path/status/duration for /api/ paths at DEBUG.
    """

    HEADER_META_KEY = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-Id"

    def process_request(self, request):
        raw = (request.META.get(self.HEADER_META_KEY) or "").strip()
        if raw and _REQUEST_ID_RE.match(raw):
            request.request_id = raw
        else:
            ensure_request_id(request)
        request._dm_started_at = time.monotonic()
        return None

    def process_response(self, request, response):
        rid = ensure_request_id(request)
        response[self.RESPONSE_HEADER] = rid

        path = getattr(request, "path", "") or ""
        started = getattr(request, "_dm_started_at", None)
        if path.startswith("/api/") and started is not None:
            logger.debug(
                "%s %s -> %s in %.1fms (request_id=%s)",
                request.method,
                path,
                response.status_code,
                (time.monotonic() - started) * 1000,
                rid,
            )
        return response
