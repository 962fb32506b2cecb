import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Entity",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("COMMUNITY", "Community"),
                            ("WARD", "Ward"),
                            ("LGA", "Local Government Area"),
                            ("STATE", "State"),
                            ("FACILITY", "Facility"),
                            ("CAMP", "Camp"),
                            ("SHELTER", "Shelter"),
                            ("OTHER", "Other"),
                        ],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("auto_approve_enabled", models.BooleanField(db_index=True, default=False)),
                ("metadata", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "db_table": "entities_entity",
                "indexes": [
                    models.Index(fields=["is_active", "auto_approve_enabled", "name"], name="entity_active_auto_name_idx"),
                    models.Index(fields=["type", "is_active"], name="entity_type_active_idx"),
                ],
            },
        ),
    ]
