"""Development settings for Coursedesk.

Extends base settings with developer-friendly defaults.
"""
from .base import *  # noqa
import os


DEBUG = True
ALLOWED_HOSTS = ["127.0.0.1", "localhost"]

# Development secret key fallback (safe only for local use)
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-key-change-me")

# Keep static handling simple in development (WhiteNoise added in prod)

# Verbose app logging locally unless overridden
if "COURSEDESK_LOG_LEVEL" not in os.environ:
    COURSEDESK_LOG_LEVEL = "DEBUG"
    for _name in ("accounts", "courses", "activity", "api", "config"):
        LOGGING["loggers"][_name]["level"] = COURSEDESK_LOG_LEVEL
