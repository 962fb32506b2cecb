# backend/dm_core/common/tests/test_permissions.py
import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.core.management.base import CommandError

from dm_core.common.permissions import ALL_ROLES, ROLE_ADMIN, ROLE_COORDINATOR, user_roles

pytestmark = pytest.mark.django_db


def test_ensure_roles_is_idempotent():
    call_command("ensure_roles")
    call_command("ensure_roles")
    assert set(Group.objects.values_list("name", flat=True)) == set(ALL_ROLES)


def test_ensure_roles_grants_to_user():
    user = get_user_model().objects.create_user(username="coord2", password="x")
    call_command("ensure_roles", "--user", "coord2", "--grant", ROLE_COORDINATOR)
    assert user_roles(user) == {ROLE_COORDINATOR}


def test_ensure_roles_unknown_user():
    with pytest.raises(CommandError):
        call_command("ensure_roles", "--user", "ghost", "--grant", ROLE_COORDINATOR)


def test_superuser_is_admin_but_groupless_user_has_no_role():
    User = get_user_model()
    admin = User.objects.create_superuser(username="root", password="x", email="root@example.org")
    plain = User.objects.create_user(username="plain", password="x")

    assert ROLE_ADMIN in user_roles(admin)
    assert user_roles(plain) == set()
