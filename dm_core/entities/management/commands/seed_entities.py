# backend/dm_core/entities/management/commands/seed_entities.py
from django.core.management.base import BaseCommand

from dm_core.entities.models import Entity, EntityType

DEMO_ENTITIES = [
    ("Bakassi IDP Camp", EntityType.CAMP, "Maiduguri, Borno", 11.8333, 13.1500),
    ("Dalori Camp", EntityType.CAMP, "Konduga, Borno", 11.7700, 13.2300),
    ("Gwange Primary Health Centre", EntityType.FACILITY, "Maiduguri, Borno", 11.8400, 13.1600),
    ("Muna Garage Community", EntityType.COMMUNITY, "Jere, Borno", 11.8800, 13.2100),
    ("Yola South Shelter", EntityType.SHELTER, "Yola, Adamawa", 9.2035, 12.4954),
]


class Command(BaseCommand):
    help = "Create a handful of demo entities for local development (idempotent by name)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--enable-auto-approval",
            action="store_true",
            help="Switch auto-approval on for newly created entities (default rules).",
        )

    def handle(self, *args, **options):
        created = 0
        for name, entity_type, location, lat, lon in DEMO_ENTITIES:
            _, was_created = Entity.objects.get_or_create(
                name=name,
                defaults={
                    "type": entity_type,
                    "location": location,
                    "latitude": lat,
                    "longitude": lon,
                    "auto_approve_enabled": bool(options.get("enable_auto_approval")),
                },
            )
            created += 1 if was_created else 0

        self.stdout.write(self.style.SUCCESS(f"Entities ensured. Newly created: {created}"))
