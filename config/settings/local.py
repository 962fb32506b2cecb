# config/settings/local.py
from .base import *  # noqa

DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"

LOGGING["loggers"]["dm_core"]["level"] = os.getenv("DJANGO_LOG_LEVEL", "DEBUG").upper()
