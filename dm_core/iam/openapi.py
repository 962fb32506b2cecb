# backend/dm_core/iam/openapi.py
from __future__ import annotations

from drf_spectacular.extensions import OpenApiAuthenticationExtension

from dm_core.iam.auth import CookieOrHeaderJWTAuthentication, access_cookie_name


class BearerOrCookieJWTScheme(OpenApiAuthenticationExtension):
    """
    Registered on import (see IamConfig.ready). Published as plain http/bearer
    so the docs "Authorize" button works; the cookie path is described only.
    """
    target_class = CookieOrHeaderJWTAuthentication
    name = "BearerOrCookieJWT"

    def get_security_definition(self, auto_schema):
        return {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": (
                "Access token from POST /api/v1/auth/login/. Field clients send it as "
                f"`Authorization: Bearer <token>`; browsers get the `{access_cookie_name()}` cookie."
            ),
        }
