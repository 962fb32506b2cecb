# backend/dm_core/iam/api/me.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from dm_core.common.permissions import user_roles
from dm_core.iam.api.schema_serializers import MeResponseSerializer


class MeView(APIView):
    """
    Who am I, and which dashboards may I open. Clients gate their menus on
    `roles`; the API enforces the same roles server side.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: MeResponseSerializer}, tags=["IAM"])
    def get(self, request):
        user = request.user
        return Response({
            "user": {
                "id": user.pk,
                "username": user.get_username(),
                "email": user.email or "",
                "name": user.get_full_name(),
                "is_superuser": user.is_superuser,
            },
            "roles": sorted(user_roles(user)),
        })
