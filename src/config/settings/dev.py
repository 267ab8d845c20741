"""Development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True

# Logging
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
LOG_DIR.mkdir(exist_ok=True)  # noqa: F405
