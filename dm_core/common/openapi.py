# backend/dm_core/common/openapi.py
from __future__ import annotations

from drf_spectacular.openapi import AutoSchema
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter


class DMSAutoSchema(AutoSchema):
    """
    Global OpenAPI improvements:

    - Documents the optional X-Request-Id correlation header on every endpoint
      (echoed back and surfaced as meta.requestId in envelopes)
    - Skips it for schema/docs views themselves
    """

    REQUEST_ID_HEADER = OpenApiParameter(
        name="X-Request-Id",
        type=OpenApiTypes.STR,
        location=OpenApiParameter.HEADER,
        required=False,
        description="Optional correlation id. Generated server-side when absent.",
    )

    def _is_docs_endpoint(self) -> bool:
        view = getattr(self, "view", None)
        if view is None:
            return False
        return view.__class__.__name__ in {"SpectacularAPIView", "SpectacularSwaggerView"}

    def get_override_parameters(self):
        params = list(super().get_override_parameters() or [])
        if self._is_docs_endpoint():
            return params
        if not any(p.name.lower() == "x-request-id" for p in params):
            params.append(self.REQUEST_ID_HEADER)
        return params
