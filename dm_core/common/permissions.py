# backend/dm_core/common/permissions.py
from __future__ import annotations

from typing import Set

from rest_framework.permissions import SAFE_METHODS, BasePermission

# Role = Django auth Group name (created by `manage.py ensure_roles`)
ROLE_ADMIN = "ADMIN"
ROLE_COORDINATOR = "COORDINATOR"
ROLE_ASSESSOR = "ASSESSOR"
ROLE_RESPONDER = "RESPONDER"
ROLE_DONOR = "DONOR"

ALL_ROLES = [ROLE_ADMIN, ROLE_COORDINATOR, ROLE_ASSESSOR, ROLE_RESPONDER, ROLE_DONOR]

COORDINATOR_REQUIRED_MSG = "Insufficient permissions. Coordinator role required."

_METHOD_ACTIONS = {
    "POST": "create",
    "PUT": "update",
    "PATCH": "partial_update",
    "DELETE": "destroy",
}


def user_roles(user) -> Set[str]:
    """
    Group names of an authenticated user; superusers additionally count as ADMIN.
    A user without groups has no role at all (only plain IsAuthenticated
    endpoints such as /me stay open to them).
    """
    if not user or not getattr(user, "is_authenticated", False):
        return set()

    roles = set(user.groups.values_list("name", flat=True))
    if user.is_superuser:
        roles.add(ROLE_ADMIN)
    return roles


def _is_detail(view) -> bool:
    kwargs = getattr(view, "kwargs", None) or {}
    return "pk" in kwargs


def view_action(request, view) -> str | None:
    """
    ViewSets carry `view.action`; plain APIViews are mapped from the HTTP method.
    """
    action = getattr(view, "action", None)
    if action:
        return action
    if request.method in SAFE_METHODS:
        return "retrieve" if _is_detail(view) else "list"
    return _METHOD_ACTIONS.get(request.method)


class RoleActionPermission(BasePermission):
    """
    Allow when the caller holds at least one role listed for the action.

    Actions missing from `roles_by_action` are denied, except reads: a GET
    on an unlisted @action falls back to the list/retrieve roles.
    """
    message = "You do not have permission to perform this action."
    roles_by_action: dict[str, set[str]] = {}

    def allowed_roles(self, request, view) -> set[str] | None:
        action = view_action(request, view)
        allowed = self.roles_by_action.get(action)
        if allowed is None and request.method in SAFE_METHODS:
            allowed = self.roles_by_action.get("retrieve" if _is_detail(view) else "list")
        return allowed

    def has_permission(self, request, view) -> bool:
        if not getattr(request.user, "is_authenticated", False):
            return False
        allowed = self.allowed_roles(request, view)
        return bool(allowed and user_roles(request.user) & allowed)


class CoordinatorPermission(BasePermission):
    """
    Verification dashboard guard: COORDINATOR only, no ADMIN bypass.
    Evaluated by DRF in `initial()`, i.e. before the handler touches any data.
    """
    message = COORDINATOR_REQUIRED_MSG

    def has_permission(self, request, view) -> bool:
        return ROLE_COORDINATOR in user_roles(request.user)


class EntityPermission(RoleActionPermission):
    """Entity reads for any role; per-entity auto-approval writes for coordinators."""
    roles_by_action = {
        "list": set(ALL_ROLES),
        "retrieve": set(ALL_ROLES),
        "auto_approval": {ROLE_COORDINATOR},
    }

    def has_permission(self, request, view) -> bool:
        allowed = super().has_permission(request, view)
        if not allowed and getattr(view, "action", None) == "auto_approval":
            self.message = COORDINATOR_REQUIRED_MSG
        return allowed


class RapidAssessmentPermission(RoleActionPermission):
    """Assessors submit; coordinators review."""
    roles_by_action = {
        "list": {ROLE_ASSESSOR, ROLE_COORDINATOR},
        "retrieve": {ROLE_ASSESSOR, ROLE_COORDINATOR},
        "create": {ROLE_ASSESSOR, ROLE_COORDINATOR},
        "verify": {ROLE_COORDINATOR},
        "reject": {ROLE_COORDINATOR},
    }
