# backend/dm_core/iam/api/auth.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer

from dm_core.common.permissions import user_roles
from dm_core.iam.api.schema_serializers import (
    DetailResponseSerializer,
    LoginRequestSerializer,
    LoginResponseSerializer,
)
from dm_core.iam.auth import DEFAULT_ACCESS_COOKIE

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_COOKIE = "dm_refresh"


def _seconds(value: Any) -> int:
    """timedelta or a number of seconds; anything else is a session cookie (0)."""
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class AuthCookies:
    access_name: str
    refresh_name: str
    access_max_age: int
    refresh_max_age: int
    secure: bool
    samesite: str

    @classmethod
    def from_settings(cls) -> "AuthCookies":
        cfg = getattr(settings, "SIMPLE_JWT", None) or {}
        return cls(
            access_name=cfg.get("AUTH_COOKIE", DEFAULT_ACCESS_COOKIE),
            refresh_name=cfg.get("AUTH_COOKIE_REFRESH", DEFAULT_REFRESH_COOKIE),
            access_max_age=_seconds(cfg.get("ACCESS_TOKEN_LIFETIME", timedelta(minutes=10))),
            refresh_max_age=_seconds(cfg.get("REFRESH_TOKEN_LIFETIME", timedelta(days=14))),
            secure=bool(cfg.get("AUTH_COOKIE_SECURE", False)),
            samesite=cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
        )

    def apply(self, response: Response, *, access: str, refresh: str) -> None:
        for name, value, max_age in (
            (self.access_name, access, self.access_max_age),
            (self.refresh_name, refresh, self.refresh_max_age),
        ):
            response.set_cookie(
                name,
                value,
                max_age=max_age,
                httponly=True,
                secure=self.secure,
                samesite=self.samesite,
                path="/",
            )

    def clear(self, response: Response) -> None:
        response.delete_cookie(self.access_name, path="/")
        response.delete_cookie(self.refresh_name, path="/")


class LoginView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(request=LoginRequestSerializer, responses={200: LoginResponseSerializer}, tags=["IAM"])
    def post(self, request):
        serializer = TokenObtainPairSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tokens = serializer.validated_data
        user = serializer.user

        res = Response(
            {"detail": "login ok", "access": tokens["access"], "roles": sorted(user_roles(user))},
            status=status.HTTP_200_OK,
        )
        AuthCookies.from_settings().apply(res, access=tokens["access"], refresh=tokens["refresh"])
        logger.info("login user=%s", user.pk)
        return res


class RefreshView(APIView):
    """
    Rotates the pair from the refresh cookie; nothing is read from the body.
    """
    permission_classes = [AllowAny]

    @extend_schema(request=None, responses={200: DetailResponseSerializer}, tags=["IAM"])
    def post(self, request):
        cookies = AuthCookies.from_settings()
        refresh = request.COOKIES.get(cookies.refresh_name)

        serializer = TokenRefreshSerializer(data={"refresh": refresh})
        serializer.is_valid(raise_exception=True)

        res = Response({"detail": "refreshed"}, status=status.HTTP_200_OK)
        cookies.apply(
            res,
            access=serializer.validated_data["access"],
            refresh=serializer.validated_data.get("refresh", refresh),
        )
        return res


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={200: DetailResponseSerializer}, tags=["IAM"])
    def post(self, request):
        res = Response({"detail": "logged out"}, status=status.HTTP_200_OK)
        AuthCookies.from_settings().clear(res)
        return res
