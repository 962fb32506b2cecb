import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("entities", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="RapidAssessment",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "assessment_type",
                    models.CharField(
                        choices=[
                            ("HEALTH", "Health"),
                            ("POPULATION", "Population"),
                            ("FOOD", "Food"),
                            ("WASH", "WASH"),
                            ("SHELTER", "Shelter"),
                            ("SECURITY", "Security"),
                        ],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                ("assessment_date", models.DateTimeField(db_index=True)),
                ("assessor_name", models.CharField(max_length=255)),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("coordinates", models.JSONField(blank=True, null=True)),
                ("media_attachments", models.JSONField(blank=True, default=list)),
                ("payload", models.JSONField(blank=True, default=dict)),
                (
                    "verification_status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("SUBMITTED", "Submitted"),
                            ("VERIFIED", "Verified"),
                            ("AUTO_VERIFIED", "Auto-verified"),
                            ("REJECTED", "Rejected"),
                        ],
                        db_index=True,
                        default="SUBMITTED",
                        max_length=32,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High"), ("CRITICAL", "Critical")],
                        db_index=True,
                        default="MEDIUM",
                        max_length=16,
                    ),
                ),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("rejection_feedback", models.TextField(blank=True, default="")),
                (
                    "assessor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rapid_assessments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "entity",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rapid_assessments",
                        to="entities.entity",
                    ),
                ),
                (
                    "verified_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="verified_assessments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "assessments_rapid_assessment",
                "indexes": [
                    models.Index(fields=["verification_status", "priority"], name="ra_status_priority_idx"),
                    models.Index(fields=["verification_status", "created_at"], name="ra_status_created_idx"),
                    models.Index(fields=["entity", "verification_status"], name="ra_entity_status_idx"),
                ],
            },
        ),
    ]
