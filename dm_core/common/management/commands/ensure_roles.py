# backend/dm_core/common/management/commands/ensure_roles.py

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError

from dm_core.common.permissions import ALL_ROLES


class Command(BaseCommand):
    help = "Ensure default role groups exist (idempotent). Optionally grant roles to a user."

    def add_arguments(self, parser):
        parser.add_argument("--user", help="Username to grant roles to.")
        parser.add_argument(
            "--grant",
            action="append",
            default=[],
            choices=ALL_ROLES,
            help="Role to grant to --user (repeatable).",
        )

    def handle(self, *args, **options):
        created = 0
        for name in ALL_ROLES:
            _, was_created = Group.objects.get_or_create(name=name)
            created += 1 if was_created else 0

        self.stdout.write(self.style.SUCCESS(f"Roles ensured. Newly created: {created}"))

        username = options.get("user")
        grants = options.get("grant") or []
        if grants and not username:
            raise CommandError("--grant requires --user")
        if not username:
            return

        User = get_user_model()
        try:
            user = User.objects.get(**{User.USERNAME_FIELD: username})
        except User.DoesNotExist:
            raise CommandError(f"User not found: {username}")

        for role in grants:
            user.groups.add(Group.objects.get(name=role))
        self.stdout.write(self.style.SUCCESS(f"Granted {', '.join(grants) or 'no roles'} to {username}"))
