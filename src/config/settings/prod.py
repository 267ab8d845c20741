"""Production settings."""
from .base import *  # noqa: F401,F403

DEBUG = False

# Database connection reuse
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)  # noqa: F405

LOG_DIR.mkdir(exist_ok=True)  # noqa: F405
