# backend/dm_core/api/urls.py
from __future__ import annotations

from django.urls import path, re_path
from rest_framework.routers import DefaultRouter

from dm_core.assessments.api.views import RapidAssessmentViewSet
from dm_core.entities.api.views import EntityViewSet
from dm_core.iam.api.auth import LoginView, LogoutView, RefreshView
from dm_core.iam.api.me import MeView
from dm_core.verification.api.views import (
    AuditExportView,
    AuditHistoryView,
    AuditRollbackView,
    AutoApprovalView,
    VerificationQueueView,
)


class OptionalSlashRouter(DefaultRouter):
    """
    Dashboard + field clients call `/rapid-assessments` without a trailing
    slash; older tooling sends one. Accept both.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.trailing_slash = "/?"


router = OptionalSlashRouter()

router.register(r"entities", EntityViewSet, basename="entities")
router.register(r"rapid-assessments", RapidAssessmentViewSet, basename="rapid-assessments")

urlpatterns = [
    # 🔐 Auth + /me
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),

    # ✅ Verification dashboard (coordinator only)
    re_path(r"^verification/auto-approval/?$", AutoApprovalView.as_view(), name="verification-auto-approval"),
    re_path(r"^verification/audit/export/?$", AuditExportView.as_view(), name="verification-audit-export"),
    re_path(
        r"^verification/audit/(?P<entry_id>[0-9a-fA-F-]{36})/rollback/?$",
        AuditRollbackView.as_view(),
        name="verification-audit-rollback",
    ),
    re_path(r"^verification/audit/?$", AuditHistoryView.as_view(), name="verification-audit"),
    re_path(
        r"^verification/rapid-assessments/?$",
        VerificationQueueView.as_view(),
        name="verification-queue",
    ),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]
