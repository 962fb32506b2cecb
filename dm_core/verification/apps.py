# backend/dm_core/verification/apps.py
from django.apps import AppConfig


class VerificationConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "dm_core.verification"
