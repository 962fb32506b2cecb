# backend/dm_core/entities/apps.py
from django.apps import AppConfig


class EntitiesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "dm_core.entities"
