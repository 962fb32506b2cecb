# backend/dm_core/iam/auth.py
from __future__ import annotations

from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication

DEFAULT_ACCESS_COOKIE = "dm_access"


def access_cookie_name() -> str:
    return (getattr(settings, "SIMPLE_JWT", None) or {}).get("AUTH_COOKIE", DEFAULT_ACCESS_COOKIE)


class CookieOrHeaderJWTAuthentication(JWTAuthentication):
    """
    Field devices send `Authorization: Bearer <access>`; the coordinator
    dashboard relies on the HttpOnly access cookie set at login.

    A present header always wins, even when it is invalid, so a stale
    cookie can never mask a bad bearer token.
    """

    def authenticate(self, request):
        if self.get_header(request) is not None:
            return super().authenticate(request)

        raw_token = request.COOKIES.get(access_cookie_name())
        if not raw_token:
            return None

        token = self.get_validated_token(raw_token)
        return self.get_user(token), token
