# backend/dm_core/assessments/apps.py
from django.apps import AppConfig


class AssessmentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "dm_core.assessments"
